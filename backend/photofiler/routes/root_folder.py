"""
PhotoFiler Backend: Root Folder Route Handlers
================================================

What:  GET/PUT/DELETE /api/root-folder.
Who:   The client's folder settings screen, after the user completes the
       system folder picker.

PUT takes what the picker returned. When the picker could only return a
document (is_directory=false), its parent directory becomes the root.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from photofiler.schemas.storage import (
    DirectoryReference,
    ErrorResponse,
    PickedLocation,
    RootFolderStatus,
)
from photofiler.services.save_orchestrator import SaveOrchestrator, get_save_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Root Folder"])


@router.get(
    "/root-folder",
    response_model=RootFolderStatus,
    summary="Current root folder and whether access is still live",
)
async def get_root_folder(
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> RootFolderStatus:
    return await orchestrator.root_folder_status()


@router.put(
    "/root-folder",
    response_model=DirectoryReference,
    responses={
        400: {"description": "Not a usable location", "model": ErrorResponse},
        409: {"description": "Picked folder is not accessible", "model": ErrorResponse},
        501: {"description": "Folder selection unavailable", "model": ErrorResponse},
    },
    summary="Select the root folder",
)
async def select_root_folder(
    picked: PickedLocation,
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> DirectoryReference:
    return await orchestrator.select_root_folder(picked)


@router.delete(
    "/root-folder",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Forget the root folder",
)
async def clear_root_folder(
    orchestrator: SaveOrchestrator = Depends(get_save_orchestrator),
) -> Response:
    await orchestrator.clear_root_folder()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
