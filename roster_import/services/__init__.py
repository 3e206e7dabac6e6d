"""
roster_import/services package marker.
"""

from roster_import.services.dependency_resolver import ClassResolver, ParentResolution, ParentResolver
from roster_import.services.effect_queue import EffectOutcome, SecondaryEffectJob, ThrottledEffectQueue
from roster_import.services.errors import DuplicateIdentifierError, ImportFailedError, RowImportError
from roster_import.services.identifier_generator import IdentifierGenerator
from roster_import.services.importers import (
    ClassImporter,
    EntityImporter,
    ParentImporter,
    StudentImporter,
    SubjectImporter,
    TeacherImporter,
    build_importer,
    import_classes,
    import_parents,
    import_students,
    import_subjects,
    import_teachers,
)
from roster_import.services.templates import generate_template

__all__ = [
    "ClassImporter",
    "ClassResolver",
    "DuplicateIdentifierError",
    "EffectOutcome",
    "EntityImporter",
    "IdentifierGenerator",
    "ImportFailedError",
    "ParentImporter",
    "ParentResolution",
    "ParentResolver",
    "RowImportError",
    "SecondaryEffectJob",
    "StudentImporter",
    "SubjectImporter",
    "TeacherImporter",
    "ThrottledEffectQueue",
    "build_importer",
    "generate_template",
    "import_classes",
    "import_parents",
    "import_students",
    "import_subjects",
    "import_teachers",
]
