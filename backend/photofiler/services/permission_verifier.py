"""
PhotoFiler Backend: Permission Verifier
=========================================

Confirms live access to a stored DirectoryReference by enumerating it.

The probe is a real directory listing: a path listing for path-like handles,
DocumentProvider.read_directory() for content URIs. The provider's list of
persisted permissions is never consulted, because a grant can be listed and
still be unusable (folder deleted, storage unmounted). Any exception means
no access.
"""

import logging

import aiofiles.os

from photofiler.schemas.storage import DirectoryReference
from photofiler.services.documents import DocumentProvider
from photofiler.services.file_service import path_from_uri

logger = logging.getLogger(__name__)


class PermissionVerifier:
    def __init__(self, documents: DocumentProvider):
        self.documents = documents

    async def has_live_access(self, ref: DirectoryReference) -> bool:
        try:
            if ref.is_content_uri:
                await self.documents.read_directory(ref.handle)
            else:
                await aiofiles.os.listdir(path_from_uri(ref.handle))
        except Exception as e:
            logger.info("Directory '%s' failed its access probe: %s", ref.display_name, e)
            return False
        return True
