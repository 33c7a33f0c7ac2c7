"""
PhotoFiler Backend: Gallery, Label & Export Route Handlers
============================================================

What:  GET /api/gallery (paged media library listing),
       GET /api/labels/suggest (default label for a photo),
       GET /api/exports/{name} (download of a shared photo).
Who:   The client's gallery modal and photo editor.

Paging:
    Newest first. Page size defaults to the platform's gallery page size
    (12 on Android, 20 elsewhere). Pass `end_cursor` from the previous page
    as `after` to continue:

        GET /api/gallery
        GET /api/gallery?after=Albums/my_dog/pixel_7_2024-01-01.jpg
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from photofiler.config import settings
from photofiler.exceptions import InvalidInputError, NotFoundError
from photofiler.schemas.storage import AssetPage, ErrorResponse, LabelSuggestion
from photofiler.services.naming import sanitize_label, suggest_label
from photofiler.services.save_orchestrator import SaveOrchestrator, get_save_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Gallery"])


@router.get(
    "/gallery",
    response_model=AssetPage,
    summary="List media library photos, newest first",
)
async def list_gallery(
    first: Optional[int] = Query(
        default=None, ge=1, le=100,
        description="Page size; defaults to the platform's gallery page size",
    ),
    after: Optional[str] = Query(default=None, description="end_cursor of the previous page"),
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> AssetPage:
    page_size = first or orchestrator.capabilities.gallery_page_size
    return await orchestrator.library.get_assets(first=page_size, after=after)


@router.get(
    "/labels/suggest",
    response_model=LabelSuggestion,
    summary="Suggest a label for a photo",
    description=(
        "A picked photo's base file name, or Photo_<timestamp> for camera "
        "captures without a usable name."
    ),
)
async def suggest(
    photo_uri: Optional[str] = Query(default=None),
) -> LabelSuggestion:
    label = suggest_label(photo_uri)
    return LabelSuggestion(label=label, sanitized=sanitize_label(label))


@router.get(
    "/exports/{name}",
    responses={
        200: {"description": "Exported photo"},
        400: {"description": "Invalid name", "model": ErrorResponse},
        404: {"description": "No such export", "model": ErrorResponse},
    },
    summary="Download a shared photo",
)
async def download_export(name: str) -> FileResponse:
    export_root = Path(settings.export_root).resolve()
    full_path = (export_root / name).resolve()

    # The resolved path must stay inside the export directory
    if full_path.parent != export_root:
        raise InvalidInputError(message="Invalid export name", field="name")
    if not full_path.is_file():
        raise NotFoundError(resource="export", resource_id=name)

    return FileResponse(path=str(full_path), media_type="image/jpeg", filename=full_path.name)
