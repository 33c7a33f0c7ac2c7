"""
PhotoFiler Backend: Photo Save Route Handlers
===============================================

What:  POST /api/photos/save, POST /api/photos/save/gallery-retry,
       GET /api/backends, POST /api/cloud-upload.
How:   Wraps the request in request-driven interaction seams and delegates to
       the SaveOrchestrator. Errors propagate to the global handlers.
Who:   Called by the capture client after the user labels a photo.

Client flow:
    1. POST /api/photos/save {photo_uri, label}
       → 200 SaveOutcome                       (live root folder, or backend named)
       → 409 backend_selection_required        details.options lists the choices
    2. POST again with "backend" set to the user's choice
    3. On 500 all_backends_exhausted with details.retry_via_gallery:
       POST /api/photos/save/gallery-retry
"""

import logging

from fastapi import APIRouter, Depends

from photofiler.schemas.storage import (
    BackendsResponse,
    ErrorResponse,
    SaveOutcome,
    SaveRequest,
)
from photofiler.services.interaction import (
    ExportShareSheet,
    PresetFolderPicker,
    RequestBackendChooser,
)
from photofiler.services.save_orchestrator import SaveOrchestrator, get_save_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Photos"])


@router.get(
    "/backends",
    response_model=BackendsResponse,
    summary="List save backends",
    description=(
        "Backends usable right now, in priority order, plus an explanation for "
        "every backend that is not offered."
    ),
)
async def list_backends(
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> BackendsResponse:
    resolution = await orchestrator.available_backends()
    return BackendsResponse(
        options=resolution.options,
        limitations=resolution.limitations,
        root_folder=orchestrator.root_folder,
    )


@router.post(
    "/photos/save",
    response_model=SaveOutcome,
    responses={
        400: {"description": "Invalid photo or label", "model": ErrorResponse},
        403: {"description": "Permission denied", "model": ErrorResponse},
        409: {"description": "Backend choice needed, or save already running", "model": ErrorResponse},
        500: {"description": "Every backend failed", "model": ErrorResponse},
        501: {"description": "Backend not available here", "model": ErrorResponse},
    },
    summary="Save a labeled photo",
)
async def save_photo(
    request: SaveRequest,
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> SaveOutcome:
    """
    Files the photo through the chosen backend, falling back through the
    remaining ones on failure.
    """
    outcome = await orchestrator.save_labeled_photo(
        request,
        chooser=RequestBackendChooser(request.backend),
        picker=PresetFolderPicker(request.picked_location),
        share_sheet=ExportShareSheet(files=orchestrator.files),
    )
    logger.info("Photo saved via %s: %s", outcome.backend.value, outcome.file_name)
    return outcome


@router.post(
    "/photos/save/gallery-retry",
    response_model=SaveOutcome,
    responses={
        400: {"description": "Invalid photo or label", "model": ErrorResponse},
        500: {"description": "Gallery save failed", "model": ErrorResponse},
    },
    summary="Retry a failed save through the gallery",
)
async def retry_via_gallery(
    request: SaveRequest,
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> SaveOutcome:
    return await orchestrator.retry_via_gallery(request)


@router.post(
    "/cloud-upload",
    response_model=SaveOutcome,
    responses={501: {"description": "Cloud upload is not available", "model": ErrorResponse}},
    summary="Upload a labeled photo to cloud storage (not available)",
)
async def cloud_upload(
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> SaveOutcome:
    """Reports the cloud backend unavailable whatever the request carries."""
    return await orchestrator.upload_to_cloud()
