"""Cloud upload placeholder. Never offered; every call reports it unavailable."""

from typing import Optional

from photofiler.exceptions import BackendUnavailableError
from photofiler.schemas.storage import BackendKind, SaveOutcome
from photofiler.services.backend_resolver import CLOUD_MESSAGE
from photofiler.services.strategies.base import SaveContext, SaveStrategy


class CloudUploadStrategy(SaveStrategy):
    kind = BackendKind.CLOUD

    def describe(self, context: SaveContext) -> str:
        return "cloud storage"

    async def save(self, context: Optional[SaveContext] = None) -> SaveOutcome:
        # Nothing about the photo is inspected before refusing
        raise BackendUnavailableError(self.kind, CLOUD_MESSAGE)

    async def _write(self, context: SaveContext) -> SaveOutcome:
        raise BackendUnavailableError(self.kind, CLOUD_MESSAGE)
