"""
PhotoFiler Backend: Document Provider
=======================================

What:  Permission-scoped, content-addressed directory API.
How:   `content://` URIs are opaque to callers. Only the provider turns them
       into storage locations, and only inside trees the user has granted.
Who:   RootFolderStrategy (content-addressed branch), PermissionVerifier,
       SaveOrchestrator (grant on select, release on clear).

LocalDocumentProvider URI scheme:
    content://<authority>/tree/<quoted relative path>       directory
    content://<authority>/document/<quoted relative path>   file

    The relative path is URL-quoted with no safe characters, so "/" never
    appears inside the id. Paths resolve under `documents_root`.

Grants:
    take_persistable_permission() records a tree URI in a JSON sidecar so the
    grant survives restarts. Any operation on a location outside every
    granted tree raises PermissionError, the same signal a revoked grant
    produces on a device.
"""

import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import List, Optional, Set
from urllib.parse import quote, unquote, urlparse

import aiofiles
import aiofiles.os

from photofiler.config import settings

logger = logging.getLogger(__name__)

GRANTS_FILENAME = ".photofiler_grants.json"


class DocumentProvider(ABC):
    """Operations available on content-addressed locations."""

    @abstractmethod
    async def read_directory(self, tree_uri: str) -> List[str]:
        """Child URIs of a directory. Raises if access is not held."""

    @abstractmethod
    async def make_directory(self, parent_uri: str, name: str) -> str:
        """Creates a child directory and returns its URI."""

    @abstractmethod
    async def create_file(self, parent_uri: str, name: str, mime_type: str) -> str:
        """Creates an empty child file and returns its URI."""

    @abstractmethod
    async def write_as_string(self, document_uri: str, content: str, encoding: str = "base64") -> None:
        """Replaces the file's content with `content` decoded per `encoding`."""

    @abstractmethod
    async def take_persistable_permission(self, tree_uri: str) -> None:
        """Persists access to a tree across restarts."""

    @abstractmethod
    async def release_persistable_permission(self, tree_uri: str) -> None:
        """Drops a persisted grant."""

    @abstractmethod
    async def persisted_permissions(self) -> List[str]:
        """Tree URIs currently granted."""

    @abstractmethod
    async def delete(self, document_uri: str) -> None:
        """Removes a file."""

    @abstractmethod
    def parent_tree_uri(self, document_uri: str) -> str:
        """Tree URI of the directory holding a document."""

    @abstractmethod
    def is_directory(self, uri: str) -> bool:
        """Whether a child URI from read_directory() names a directory."""

    @staticmethod
    def display_name(uri: str) -> str:
        """Last path component of a URI, for listings and messages."""
        last = urlparse(uri).path.rstrip("/").split("/")[-1]
        return PurePosixPath(unquote(last)).name


class LocalDocumentProvider(DocumentProvider):
    """DocumentProvider over a local directory tree."""

    def __init__(
        self,
        documents_root: Optional[str] = None,
        authority: Optional[str] = None,
    ):
        self.root = Path(documents_root or settings.documents_root).resolve()
        self.authority = authority or settings.documents_authority
        self.grants_path = self.root / GRANTS_FILENAME
        self._grants: Optional[Set[str]] = None

    # ── URI mapping ───────────────────────────────────────────────────────
    def tree_uri(self, relative_path: str = "") -> str:
        return f"content://{self.authority}/tree/{quote(relative_path.strip('/'), safe='')}"

    def document_uri(self, relative_path: str) -> str:
        return f"content://{self.authority}/document/{quote(relative_path.strip('/'), safe='')}"

    def _parse(self, uri: str):
        """→ (kind, relative path). Raises ValueError on foreign URIs."""
        parsed = urlparse(uri)
        if parsed.scheme != "content" or parsed.netloc != self.authority:
            raise ValueError(f"Not a document URI of {self.authority}: {uri}")
        parts = parsed.path.lstrip("/").split("/", 1)
        kind = parts[0]
        if kind not in ("tree", "document"):
            raise ValueError(f"Unknown document URI kind '{kind}': {uri}")
        relative = unquote(parts[1]) if len(parts) > 1 else ""
        return kind, relative.strip("/")

    def _path(self, relative: str) -> Path:
        path = (self.root / relative).resolve()
        if path != self.root and self.root not in path.parents:
            raise PermissionError(f"Location escapes the document root: {relative}")
        return path

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix() if path != self.root else ""

    def is_directory(self, uri: str) -> bool:
        try:
            return self._parse(uri)[0] == "tree"
        except ValueError:
            return False

    def parent_tree_uri(self, document_uri: str) -> str:
        """Tree URI of the directory holding a picked document."""
        _, relative = self._parse(document_uri)
        parent = PurePosixPath(relative).parent.as_posix()
        return self.tree_uri("" if parent == "." else parent)

    # ── Grants ────────────────────────────────────────────────────────────
    async def _load_grants(self) -> Set[str]:
        if self._grants is None:
            self._grants = set()
            if await aiofiles.os.path.exists(self.grants_path):
                async with aiofiles.open(self.grants_path, "r", encoding="utf-8") as f:
                    raw = await f.read()
                try:
                    self._grants = set(json.loads(raw) or [])
                except (ValueError, TypeError):
                    logger.warning("Ignoring unreadable grants file %s", self.grants_path)
        return self._grants

    async def _store_grants(self, grants: Set[str]) -> None:
        await aiofiles.os.makedirs(self.root, exist_ok=True)
        async with aiofiles.open(self.grants_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(sorted(grants)))
        self._grants = grants

    async def _require_access(self, relative: str) -> Path:
        path = self._path(relative)
        for granted in await self._load_grants():
            try:
                _, granted_rel = self._parse(granted)
            except ValueError:
                continue
            granted_path = self._path(granted_rel)
            if path == granted_path or granted_path in path.parents:
                return path
        raise PermissionError(f"No persisted permission covers '{relative or '/'}'")

    async def take_persistable_permission(self, tree_uri: str) -> None:
        kind, relative = self._parse(tree_uri)
        if kind != "tree":
            raise ValueError(f"Permissions are granted on trees, not documents: {tree_uri}")
        if not await aiofiles.os.path.isdir(self._path(relative)):
            raise FileNotFoundError(f"No such directory: {relative or '/'}")
        grants = set(await self._load_grants())
        grants.add(self.tree_uri(relative))
        await self._store_grants(grants)
        logger.info("Persisted permission for %s", tree_uri)

    async def release_persistable_permission(self, tree_uri: str) -> None:
        grants = set(await self._load_grants())
        if tree_uri in grants:
            grants.discard(tree_uri)
            await self._store_grants(grants)
            logger.info("Released permission for %s", tree_uri)

    async def persisted_permissions(self) -> List[str]:
        return sorted(await self._load_grants())

    # ── Directory & file operations ───────────────────────────────────────
    async def read_directory(self, tree_uri: str) -> List[str]:
        _, relative = self._parse(tree_uri)
        path = await self._require_access(relative)
        children = []
        for name in sorted(await aiofiles.os.listdir(path)):
            if name.startswith("."):
                continue
            child_rel = f"{relative}/{name}".strip("/")
            if await aiofiles.os.path.isdir(path / name):
                children.append(self.tree_uri(child_rel))
            else:
                children.append(self.document_uri(child_rel))
        return children

    async def make_directory(self, parent_uri: str, name: str) -> str:
        _, relative = self._parse(parent_uri)
        parent = await self._require_access(relative)
        target = self._path(self._relative(parent / name))
        await aiofiles.os.mkdir(target)
        return self.tree_uri(self._relative(target))

    async def create_file(self, parent_uri: str, name: str, mime_type: str) -> str:
        _, relative = self._parse(parent_uri)
        parent = await self._require_access(relative)
        target = self._path(self._relative(parent / name))
        # "xb" refuses an existing file; content is written separately
        async with aiofiles.open(target, "xb"):
            pass
        logger.debug("Created document %s (%s)", target.name, mime_type)
        return self.document_uri(self._relative(target))

    async def write_as_string(self, document_uri: str, content: str, encoding: str = "base64") -> None:
        kind, relative = self._parse(document_uri)
        if kind != "document":
            raise IsADirectoryError(f"Cannot write to a directory URI: {document_uri}")
        target = await self._require_access(relative)
        if encoding == "base64":
            try:
                data = base64.b64decode(content, validate=True)
            except binascii.Error as e:
                raise ValueError(f"Content is not valid base64: {e}") from e
        else:
            data = content.encode(encoding)
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp, target)
        except Exception:
            if await aiofiles.os.path.exists(tmp):
                await aiofiles.os.remove(tmp)
            raise

    async def delete(self, document_uri: str) -> None:
        """Removes a file (used to discard an empty file after a failed write)."""
        _, relative = self._parse(document_uri)
        target = await self._require_access(relative)
        if await aiofiles.os.path.isfile(target):
            await aiofiles.os.remove(target)
