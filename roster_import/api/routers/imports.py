"""
roster_import/api/routers/imports.py

Bulk roster import HTTP endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, UploadFile, status

from roster_import.api.dependencies import get_csv_upload, get_entity_kind, get_gateway, get_settings
from roster_import.config import ImportSettings
from roster_import.domain.results import ImportOptions
from roster_import.parsing.tokenizer import ImportSourceError
from roster_import.repositories.gateway import PersistenceGateway
from roster_import.schemas.imports import ImportResultResponse
from roster_import.services.errors import ImportFailedError
from roster_import.services.importers import build_importer
from roster_import.services.templates import generate_template

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post("/{kind}", response_model=ImportResultResponse)
async def import_csv(
    kind: str = Depends(get_entity_kind),
    file: UploadFile = Depends(get_csv_upload),
    class_id: int | None = Query(default=None, ge=1, description="Class applied to every imported student"),
    gateway: PersistenceGateway = Depends(get_gateway),
    settings: ImportSettings = Depends(get_settings),
) -> ImportResultResponse:
    """
    Import one CSV file of ``kind`` rows and report per-row outcomes.
    """

    try:
        content = await file.read()
    finally:
        await file.close()

    importer = build_importer(kind, gateway=gateway, settings=settings)
    try:
        result = await importer.run(content, options=ImportOptions(class_id=class_id))
    except ImportSourceError as exc:
        logger.info("Rejected %s upload filename=%r: %s", kind, file.filename, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ImportFailedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "message": "Import stopped: persistence service unavailable.",
                "processed": exc.processed,
                "total_rows": exc.total,
            },
        ) from exc

    return ImportResultResponse.from_result(result)


@router.get("/{kind}/template")
def download_template(kind: str = Depends(get_entity_kind)) -> Response:
    """
    Return the CSV template for ``kind``.
    """

    return Response(
        content=generate_template(kind),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{kind}_import_template.csv"'},
    )
