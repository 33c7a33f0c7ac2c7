"""
App-private strategy: <app_private_root>/<LabeledPhotos>/<label>/<file>.

After the copy the photo is mirrored into the media library so it shows up
in the gallery too. The mirror is best effort; its failure is logged and
the save still succeeds. An asset that never reached its album is deleted again.
"""

import logging
from pathlib import Path

from photofiler.schemas.storage import BackendKind, SaveOutcome
from photofiler.services.file_service import FileService
from photofiler.services.media_library import MediaLibrary
from photofiler.services.strategies.base import SaveContext, SaveStrategy

logger = logging.getLogger(__name__)


class AppPrivateStrategy(SaveStrategy):
    kind = BackendKind.APP_PRIVATE

    def __init__(self, root: str, container: str, files: FileService, library: MediaLibrary):
        self.root = Path(root).resolve()
        self.container = container
        self.files = files
        self.library = library

    def describe(self, context: SaveContext) -> str:
        return f"app storage folder '{self.container}/{context.sanitized_label}'"

    async def _write(self, context: SaveContext) -> SaveOutcome:
        directory = self.root / self.container / context.sanitized_label
        written = await self.files.copy_into(
            context.photo_path, directory, context.file_name.candidates()
        )
        await self._mirror(written, context)
        return SaveOutcome.succeeded(
            BackendKind.APP_PRIVATE,
            self.describe(context),
            file_name=written.name,
        )

    async def _mirror(self, path: Path, context: SaveContext) -> None:
        album_name = context.sanitized_label
        try:
            asset = await self.library.create_asset(path, context.file_name.candidates(path.name))
        except Exception as e:
            logger.warning("Media library mirror of %s failed: %s", path.name, e)
            return
        try:
            album = await self.library.get_album(album_name)
            if album is None:
                await self.library.create_album(album_name, asset, copy_asset=False)
            else:
                await self.library.add_assets_to_album([asset], album, copy_assets=False)
        except Exception as e:
            logger.warning("Mirror album step failed for %s; removing asset %s: %s", album_name, asset.id, e)
            try:
                await self.library.delete_assets([asset])
            except Exception as cleanup_error:
                logger.error("Could not remove unfiled asset %s: %s", asset.id, cleanup_error)
