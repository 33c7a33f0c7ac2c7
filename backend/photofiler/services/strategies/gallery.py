"""
Gallery strategy: file the photo as a media-library asset inside an album.

The photo is staged as a temporary cache copy, registered as an asset, then
moved into the album (created when absent). If the album step fails the
asset is deleted again, so the index never holds a half-filed photo. The
temporary copy is removed on every path.
"""

import logging

from photofiler.schemas.storage import BackendKind, SaveOutcome
from photofiler.services.file_service import FileService
from photofiler.services.media_library import MediaLibrary
from photofiler.services.strategies.base import SaveContext, SaveStrategy

logger = logging.getLogger(__name__)


class GalleryStrategy(SaveStrategy):
    kind = BackendKind.GALLERY

    def __init__(self, library: MediaLibrary, files: FileService):
        self.library = library
        self.files = files

    def describe(self, context: SaveContext) -> str:
        return f"the gallery album '{context.album_name}'"

    async def _write(self, context: SaveContext) -> SaveOutcome:
        album_name = context.album_name
        staged = await self.files.make_temp_copy(context.photo_path)
        try:
            asset = await self.library.create_asset(staged, context.file_name.candidates())
            try:
                album = await self.library.get_album(album_name)
                if album is None:
                    await self.library.create_album(album_name, asset, copy_asset=False)
                else:
                    await self.library.add_assets_to_album([asset], album, copy_assets=False)
            except Exception:
                logger.warning("Album step failed for %s; removing asset %s", album_name, asset.id)
                await self.library.delete_assets([asset])
                raise
        finally:
            await self.files.cleanup_file(staged)

        logger.info("Saved %s to gallery album %s", asset.filename, album_name)
        return SaveOutcome.succeeded(
            BackendKind.GALLERY,
            self.describe(context),
            file_name=asset.filename,
        )
