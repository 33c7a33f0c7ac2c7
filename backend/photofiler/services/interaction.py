"""
PhotoFiler Backend: Interaction Seams
=======================================

What:  The points where a save needs the user: choosing a backend, picking a
       folder, completing a share.
How:   Abstract seams with request-driven implementations. Over HTTP the
       client has already interacted before it calls the API, so the
       "interaction" replays what the request carries.

    BackendChooser   → RequestBackendChooser   raises BackendSelectionRequiredError
                                               when the request names no backend
    FolderPicker     → PresetFolderPicker      returns the request's pickedLocation
    ShareSheet       → ExportShareSheet        publishes the file under export_root
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from photofiler.config import settings
from photofiler.exceptions import BackendSelectionRequiredError
from photofiler.schemas.storage import BackendKind, BackendOption, PickedLocation
from photofiler.services.file_service import FileService, file_service

logger = logging.getLogger(__name__)

EXPORTS_URL_PREFIX = "/api/exports"


class BackendChooser(ABC):
    @abstractmethod
    async def choose(
        self, options: List[BackendOption], notice: Optional[str] = None
    ) -> Optional[BackendKind]:
        """The backend the user picked, or None when the prompt was dismissed."""


class FolderPicker(ABC):
    @abstractmethod
    async def pick(self) -> Optional[PickedLocation]:
        """The picked folder (or document), or None when dismissed."""


class ShareSheet(ABC):
    @abstractmethod
    async def share(self, path: Path, names: Iterable[str], mime_type: str = "image/jpeg") -> Optional[str]:
        """Destination description once shared, or None when dismissed."""


class RequestBackendChooser(BackendChooser):
    """Answers with the backend the request named; asks the client otherwise."""

    def __init__(self, requested: Optional[BackendKind] = None):
        self.requested = requested

    async def choose(
        self, options: List[BackendOption], notice: Optional[str] = None
    ) -> Optional[BackendKind]:
        offered = [option.kind for option in options]
        if self.requested is None or self.requested not in offered:
            ctx = {"notice": notice} if notice else {}
            raise BackendSelectionRequiredError(
                options=[option.model_dump(mode="json") for option in options],
                context=ctx,
            )
        return self.requested


class PresetFolderPicker(FolderPicker):
    def __init__(self, location: Optional[PickedLocation] = None):
        self.location = location

    async def pick(self) -> Optional[PickedLocation]:
        return self.location


class ExportShareSheet(ShareSheet):
    """
    Completes every share by publishing the file in the export directory,
    where the client downloads it from /api/exports/<name>.
    """

    def __init__(self, export_root: Optional[str] = None, files: Optional[FileService] = None):
        self.export_root = Path(export_root or settings.export_root).resolve()
        self.files = files or file_service

    async def share(self, path: Path, names: Iterable[str], mime_type: str = "image/jpeg") -> Optional[str]:
        exported = await self.files.copy_into(path, self.export_root, names)
        logger.info("Shared %s as %s (%s)", path.name, exported.name, mime_type)
        return f"{EXPORTS_URL_PREFIX}/{exported.name}"
