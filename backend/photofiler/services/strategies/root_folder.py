"""
PhotoFiler Backend: Root Folder Strategy
==========================================

What:  Saves into the user-selected root folder, under a label subfolder.
How:   Branches on the handle's addressing scheme.

    Path-like (file:// or absolute path)
        1. <root>/<label>/ is created, an existing one is reused
        2. photo copied under the first free candidate name

    Content-addressed (content://)
        1. source read fully and base64-encoded
        2. label subdirectory handle reused (found by name) or created
        3. file handle created inside it
        4. encoded bytes written through the DocumentProvider
        If the subdirectory cannot be created, the file is written directly
        under the root as <label>_<file name>.

The reference itself is passed in through SaveContext. The orchestrator has
already probed it; this strategy never touches the handle store.
"""

import logging

from photofiler.schemas.storage import BackendKind, DirectoryReference, SaveOutcome
from photofiler.services.documents import DocumentProvider
from photofiler.services.file_service import FileService, path_from_uri
from photofiler.services.strategies.base import SaveContext, SaveStrategy, write_document

logger = logging.getLogger(__name__)


class RootFolderStrategy(SaveStrategy):
    kind = BackendKind.ROOT_FOLDER

    def __init__(self, files: FileService, documents: DocumentProvider):
        self.files = files
        self.documents = documents

    def describe(self, context: SaveContext) -> str:
        root = context.root_folder
        name = root.display_name if root else "root folder"
        return f"folder '{name}/{context.sanitized_label}'"

    async def _write(self, context: SaveContext) -> SaveOutcome:
        root = context.root_folder
        if root is None:
            raise self.failure(context, "No root folder is selected.")
        if root.is_content_uri:
            return await self._write_document(root, context)
        return await self._write_path(root, context)

    async def _write_path(self, root: DirectoryReference, context: SaveContext) -> SaveOutcome:
        directory = path_from_uri(root.handle) / context.sanitized_label
        written = await self.files.copy_into(
            context.photo_path, directory, context.file_name.candidates()
        )
        return SaveOutcome.succeeded(self.kind, self.describe(context), file_name=written.name)

    async def _label_directory(self, root: DirectoryReference, label: str) -> str:
        for child in await self.documents.read_directory(root.handle):
            if self.documents.is_directory(child) and self.documents.display_name(child) == label:
                return child
        return await self.documents.make_directory(root.handle, label)

    async def _write_document(self, root: DirectoryReference, context: SaveContext) -> SaveOutcome:
        label = context.sanitized_label
        encoded = await self.files.read_base64(context.photo_path)

        try:
            folder_uri = await self._label_directory(root, label)
            names = context.file_name.candidates()
            destination = self.describe(context)
        except Exception as e:
            logger.warning(
                "Could not create subfolder '%s' in %s, writing under the root: %s",
                label, root.display_name, e,
            )
            folder_uri = root.handle
            names = context.file_name.candidates(context.file_name.with_label(label))
            destination = f"folder '{root.display_name}'"

        _, file_name = await write_document(self.documents, folder_uri, names, encoded)
        logger.info("Saved %s to %s", file_name, destination)
        return SaveOutcome.succeeded(self.kind, destination, file_name=file_name)
