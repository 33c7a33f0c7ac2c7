"""
PhotoFiler Backend: Save Strategy Contract
============================================

What:  SaveContext (everything one attempt needs) and the SaveStrategy base.
How:   save() wraps the strategy's _write(). Whatever _write() raises leaves
       the strategy as a StrategyFailureError naming the destination, so the
       orchestrator never sees raw OS or library exceptions.

Every strategy gets the same SaveContext within one attempt, including the
single PhotoFileName computed up front. Collisions are resolved by trying the
name's timestamp-suffixed candidates; nothing is ever overwritten.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple

from photofiler.exceptions import StrategyFailureError
from photofiler.schemas.storage import BackendKind, DirectoryReference, SaveOutcome
from photofiler.services.documents import DocumentProvider
from photofiler.services.interaction import FolderPicker, ShareSheet
from photofiler.services.naming import PhotoFileName, sanitize_label

logger = logging.getLogger(__name__)

PHOTO_MIME_TYPE = "image/jpeg"


@dataclass
class SaveContext:
    photo_path: Path
    label: str
    file_name: PhotoFileName
    folder_name_hint: Optional[str] = None
    root_folder: Optional[DirectoryReference] = None
    picker: Optional[FolderPicker] = None
    share_sheet: Optional[ShareSheet] = None

    @property
    def sanitized_label(self) -> str:
        return sanitize_label(self.label)

    @property
    def album_name(self) -> str:
        """Gallery album / mirror album: the folder hint, else the label."""
        return sanitize_label(self.folder_name_hint or self.label)


class SaveStrategy(ABC):
    """One way of durably placing a photo."""

    kind: BackendKind

    async def save(self, context: SaveContext) -> SaveOutcome:
        try:
            return await self._write(context)
        except StrategyFailureError:
            raise
        except Exception as e:
            destination = self.describe(context)
            logger.warning(
                "%s save failed (%s): %s: %s",
                self.kind.value, destination, type(e).__name__, e,
            )
            raise StrategyFailureError(
                backend=self.kind,
                destination=destination,
                context={"error": str(e), "error_type": type(e).__name__},
            ) from e

    @abstractmethod
    async def _write(self, context: SaveContext) -> SaveOutcome:
        ...

    @abstractmethod
    def describe(self, context: SaveContext) -> str:
        """User-facing name of the destination this strategy writes to."""

    def failure(self, context: SaveContext, message: str) -> StrategyFailureError:
        return StrategyFailureError(
            backend=self.kind, destination=self.describe(context), message=message
        )


async def write_document(
    documents: DocumentProvider, folder_uri: str, names: Iterable[str], encoded: str
) -> Tuple[str, str]:
    """
    Creates the first free named file under `folder_uri` and writes the
    base64 content into it. An emptied file is removed if the write fails.

    Returns: (document URI, file name)
    """
    for name in names:
        try:
            document_uri = await documents.create_file(folder_uri, name, PHOTO_MIME_TYPE)
        except FileExistsError:
            continue
        try:
            await documents.write_as_string(document_uri, encoded, encoding="base64")
        except Exception:
            try:
                await documents.delete(document_uri)
            except Exception as e:
                logger.warning("Could not remove empty document %s: %s", document_uri, e)
            raise
        return document_uri, name
    raise FileExistsError(f"All candidate names are taken in {folder_uri}")
