"""
Custom location strategy: a one-off destination picked by the user.

With a native folder picker the photo is copied straight into the picked
directory (a picked document stands for its parent directory). Without one
the save degrades to the share sheet, and a completed share counts as
success. A dismissed picker or share fails this backend.
"""

import logging
from pathlib import PurePosixPath

from photofiler.schemas.storage import BackendKind, PickedLocation, SaveOutcome
from photofiler.services.backend_resolver import NO_PICKER_MESSAGE
from photofiler.services.documents import DocumentProvider
from photofiler.services.file_service import FileService, path_from_uri
from photofiler.services.platform import PlatformCapabilities
from photofiler.services.strategies.base import SaveContext, SaveStrategy, write_document

logger = logging.getLogger(__name__)


class CustomLocationStrategy(SaveStrategy):
    kind = BackendKind.CUSTOM_LOCATION

    def __init__(
        self,
        capabilities: PlatformCapabilities,
        files: FileService,
        documents: DocumentProvider,
    ):
        self.capabilities = capabilities
        self.files = files
        self.documents = documents

    def describe(self, context: SaveContext) -> str:
        return "a custom location"

    async def _write(self, context: SaveContext) -> SaveOutcome:
        if self.capabilities.has_native_folder_picker and context.picker is not None:
            location = await context.picker.pick()
            if location is None:
                raise self.failure(context, "No folder was picked.")
            return await self._write_picked(location, context)

        if self.capabilities.has_share_sheet and context.share_sheet is not None:
            shared = await context.share_sheet.share(
                context.photo_path, context.file_name.candidates()
            )
            if shared is None:
                raise self.failure(context, "Sharing was cancelled.")
            return SaveOutcome.succeeded(
                self.kind, f"shared as {shared}", file_name=PurePosixPath(shared).name
            )

        raise self.failure(context, NO_PICKER_MESSAGE)

    async def _write_picked(self, location: PickedLocation, context: SaveContext) -> SaveOutcome:
        names = context.file_name.candidates()
        if location.uri.startswith("content://"):
            folder_uri = (
                location.uri
                if location.is_directory
                else self.documents.parent_tree_uri(location.uri)
            )
            encoded = await self.files.read_base64(context.photo_path)
            _, file_name = await write_document(self.documents, folder_uri, names, encoded)
            folder = self.documents.display_name(folder_uri)
        else:
            directory = path_from_uri(location.uri)
            if not location.is_directory:
                directory = directory.parent
            written = await self.files.copy_into(context.photo_path, directory, names)
            file_name, folder = written.name, directory.name

        if location.is_directory and location.name:
            folder = location.name
        destination = f"folder '{folder}'"
        logger.info("Saved %s to custom location %s", file_name, destination)
        return SaveOutcome.succeeded(self.kind, destination, file_name=file_name)
