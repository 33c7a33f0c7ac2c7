"""
PhotoFiler Backend: Save Strategies
=====================================

One SaveStrategy per BackendKind:

    RootFolderStrategy       user-selected root folder (path or content URI)
    GalleryStrategy          media-library album
    AppPrivateStrategy       app-private directory + gallery mirror
    CustomLocationStrategy   folder picker, degrading to the share sheet
    CloudUploadStrategy      placeholder, always unavailable
"""

from photofiler.services.strategies.app_private import AppPrivateStrategy
from photofiler.services.strategies.base import SaveContext, SaveStrategy
from photofiler.services.strategies.cloud import CloudUploadStrategy
from photofiler.services.strategies.custom_location import CustomLocationStrategy
from photofiler.services.strategies.gallery import GalleryStrategy
from photofiler.services.strategies.root_folder import RootFolderStrategy

__all__ = [
    "AppPrivateStrategy",
    "CloudUploadStrategy",
    "CustomLocationStrategy",
    "GalleryStrategy",
    "RootFolderStrategy",
    "SaveContext",
    "SaveStrategy",
]
