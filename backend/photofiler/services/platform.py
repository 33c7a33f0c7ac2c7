"""
PhotoFiler Backend: Platform Capabilities & Permissions
=========================================================

What:  The capability set the save core branches on, and the permission
       gateway it asks for media/storage access.
How:   Capabilities are resolved once from settings into a frozen dataclass.
       Code checks `capabilities.has_native_folder_picker`, never the
       platform name.

Profiles:
    android   persistent directory handles, native folder picker, share sheet,
              legacy storage permission below API 33, gallery page size 12
    ios       no persistent handles, no folder picker, share sheet,
              gallery page size 20
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

import aiofiles.os

from photofiler.config import Settings, settings

logger = logging.getLogger(__name__)

# First Android API level with scoped media permissions only
LEGACY_STORAGE_MAX_API = 32


@dataclass(frozen=True)
class PlatformCapabilities:
    name: str
    supports_persistent_directory_handles: bool
    has_native_folder_picker: bool
    has_share_sheet: bool
    requires_legacy_storage_permission: bool = False
    gallery_page_size: int = 20

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "PlatformCapabilities":
        config = config or settings
        if config.platform == "android":
            return cls(
                name="android",
                supports_persistent_directory_handles=True,
                has_native_folder_picker=True,
                has_share_sheet=True,
                requires_legacy_storage_permission=(
                    config.android_api_level <= LEGACY_STORAGE_MAX_API
                ),
                gallery_page_size=12,
            )
        return cls(
            name=config.platform,
            supports_persistent_directory_handles=False,
            has_native_folder_picker=False,
            has_share_sheet=True,
            gallery_page_size=20,
        )


# ── Permission Gateway ────────────────────────────────────────────────────
class PermissionGateway(ABC):
    """Grants or refuses the permissions a save needs."""

    @abstractmethod
    async def request_media_permission(self) -> bool:
        """True when the media library may be read and written."""

    @abstractmethod
    async def request_legacy_storage_permission(self) -> bool:
        """True when shared external storage may be written (old Android)."""


class FileSystemPermissionGateway(PermissionGateway):
    """
    Grants a permission when its backing directories exist (or can be
    created) and are writable by this process.
    """

    def __init__(self, media_roots: Iterable[str], storage_roots: Iterable[str]):
        self.media_roots = [Path(p) for p in media_roots]
        self.storage_roots = [Path(p) for p in storage_roots]

    async def _writable(self, roots) -> bool:
        for root in roots:
            try:
                await aiofiles.os.makedirs(root, exist_ok=True)
                if not await aiofiles.os.access(root, os.W_OK):
                    logger.warning("Storage root not writable: %s", root)
                    return False
            except OSError as e:
                logger.warning("Storage root unavailable: %s (%s)", root, e)
                return False
        return True

    async def request_media_permission(self) -> bool:
        return await self._writable(self.media_roots)

    async def request_legacy_storage_permission(self) -> bool:
        return await self._writable(self.storage_roots)


def default_permission_gateway(config: Optional[Settings] = None) -> PermissionGateway:
    config = config or settings
    return FileSystemPermissionGateway(
        media_roots=[config.media_library_root],
        storage_roots=[config.documents_root],
    )


async def storage_status(roots: Dict[str, str]) -> Dict[str, str]:
    """writable / missing / read_only per named root (health check)."""
    status = {}
    for role, root in roots.items():
        if not await aiofiles.os.path.isdir(root):
            status[role] = "missing"
        elif await aiofiles.os.access(root, os.W_OK):
            status[role] = "writable"
        else:
            status[role] = "read_only"
    return status
