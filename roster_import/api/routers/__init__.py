"""
roster_import/api/routers package marker.
"""

from roster_import.api.routers.imports import router as imports_router

__all__ = ["imports_router"]
