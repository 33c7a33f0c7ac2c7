"""
PhotoFiler Backend: Media Library
===================================

What:  Asset/album index of the device gallery.
Who:   GalleryStrategy (asset + album), AppPrivateStrategy (best-effort
       mirror), the gallery listing route.

LocalMediaLibrary layout:
    <media_library_root>/
    ├── Camera/              assets not filed in any album
    └── Albums/<album>/      assets filed in <album>

    An asset id is its path relative to the library root, so moving an asset
    into an album changes its id. File names are unique across the whole
    library; create_asset() takes the candidate names to choose from.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

import aiofiles.os

from photofiler.config import settings
from photofiler.schemas.storage import AssetPage, MediaAlbum, MediaAsset
from photofiler.services.file_service import FileService, file_service

logger = logging.getLogger(__name__)

CAMERA_DIR = "Camera"
ALBUMS_DIR = "Albums"


class MediaLibrary(ABC):
    """The gallery index a photo becomes visible in."""

    @abstractmethod
    async def create_asset(self, local_path: Path, names: Optional[Iterable[str]] = None) -> MediaAsset:
        """Registers a copy of `local_path` as a new asset."""

    @abstractmethod
    async def get_album(self, name: str) -> Optional[MediaAlbum]:
        ...

    @abstractmethod
    async def create_album(self, name: str, asset: MediaAsset, copy_asset: bool = False) -> MediaAlbum:
        """Creates album `name` holding `asset` (moved unless copy_asset)."""

    @abstractmethod
    async def add_assets_to_album(
        self, assets: List[MediaAsset], album: MediaAlbum, copy_assets: bool = False
    ) -> None:
        ...

    @abstractmethod
    async def delete_assets(self, assets: List[MediaAsset]) -> None:
        ...

    @abstractmethod
    async def get_assets(self, first: int, after: Optional[str] = None) -> AssetPage:
        """Newest-first page of assets following the `after` cursor."""


class LocalMediaLibrary(MediaLibrary):
    def __init__(self, root: Optional[str] = None, files: Optional[FileService] = None):
        self.root = Path(root or settings.media_library_root).resolve()
        self.files = files or file_service

    @property
    def camera_dir(self) -> Path:
        return self.root / CAMERA_DIR

    @property
    def albums_dir(self) -> Path:
        return self.root / ALBUMS_DIR

    def _path(self, asset_id: str) -> Path:
        path = (self.root / asset_id).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Asset id outside the library: {asset_id}")
        return path

    async def _asset(self, path: Path, album: Optional[str] = None) -> MediaAsset:
        stat = await aiofiles.os.stat(path)
        return MediaAsset(
            id=path.relative_to(self.root).as_posix(),
            uri=path.as_uri(),
            filename=path.name,
            album=album,
            creation_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    async def _album_names(self) -> List[str]:
        if not await aiofiles.os.path.isdir(self.albums_dir):
            return []
        names = [
            name
            for name in await aiofiles.os.listdir(self.albums_dir)
            if await aiofiles.os.path.isdir(self.albums_dir / name)
        ]
        return sorted(names)

    async def _name_taken(self, name: str) -> bool:
        if await aiofiles.os.path.exists(self.camera_dir / name):
            return True
        for album in await self._album_names():
            if await aiofiles.os.path.exists(self.albums_dir / album / name):
                return True
        return False

    async def create_asset(self, local_path: Path, names: Optional[Iterable[str]] = None) -> MediaAsset:
        await self.files.ensure_directory(self.camera_dir)
        for name in names or [Path(local_path).name]:
            if not await self._name_taken(name):
                destination = await self.files.copy_file(local_path, self.camera_dir / name)
                asset = await self._asset(destination)
                logger.info("Media asset created: %s", asset.id)
                return asset
        raise FileExistsError(f"No free asset name for {Path(local_path).name}")

    async def get_album(self, name: str) -> Optional[MediaAlbum]:
        album_dir = self.albums_dir / name
        if not await aiofiles.os.path.isdir(album_dir):
            return None
        count = len([n for n in await aiofiles.os.listdir(album_dir) if not n.startswith(".")])
        return MediaAlbum(id=f"{ALBUMS_DIR}/{name}", title=name, asset_count=count)

    async def create_album(self, name: str, asset: MediaAsset, copy_asset: bool = False) -> MediaAlbum:
        album_dir = self.albums_dir / name
        await aiofiles.os.makedirs(self.albums_dir, exist_ok=True)
        # An existing album must be appended to, not recreated
        await aiofiles.os.mkdir(album_dir)
        album = MediaAlbum(id=f"{ALBUMS_DIR}/{name}", title=name)
        await self.add_assets_to_album([asset], album, copy_assets=copy_asset)
        logger.info("Album created: %s", name)
        return album

    async def add_assets_to_album(
        self, assets: List[MediaAsset], album: MediaAlbum, copy_assets: bool = False
    ) -> None:
        album_dir = self.albums_dir / album.title
        if not await aiofiles.os.path.isdir(album_dir):
            raise FileNotFoundError(f"Album does not exist: {album.title}")
        for asset in assets:
            source = self._path(asset.id)
            target = album_dir / source.name
            if await aiofiles.os.path.exists(target):
                raise FileExistsError(f"Album {album.title} already holds {source.name}")
            if copy_assets:
                await self.files.copy_file(source, target)
            else:
                await aiofiles.os.replace(source, target)

    async def delete_assets(self, assets: List[MediaAsset]) -> None:
        for asset in assets:
            await self.files.cleanup_file(self._path(asset.id))
            logger.info("Media asset deleted: %s", asset.id)

    async def _all_assets(self) -> List[MediaAsset]:
        assets = []
        if await aiofiles.os.path.isdir(self.camera_dir):
            for name in await aiofiles.os.listdir(self.camera_dir):
                if not name.startswith("."):
                    assets.append(await self._asset(self.camera_dir / name))
        for album in await self._album_names():
            for name in await aiofiles.os.listdir(self.albums_dir / album):
                if not name.startswith("."):
                    assets.append(await self._asset(self.albums_dir / album / name, album))
        assets.sort(key=lambda a: (a.creation_time, a.id), reverse=True)
        return assets

    async def get_assets(self, first: int, after: Optional[str] = None) -> AssetPage:
        assets = await self._all_assets()
        start = 0
        if after:
            ids = [a.id for a in assets]
            # An unknown cursor (asset moved or deleted) restarts from the top
            start = ids.index(after) + 1 if after in ids else 0
        page = assets[start:start + first]
        return AssetPage(
            assets=page,
            end_cursor=page[-1].id if page else after,
            has_next_page=start + first < len(assets),
        )
