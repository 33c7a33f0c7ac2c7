"""
PhotoFiler Backend: File Service
==================================

What:  Photo reference validation and the async file operations every
       path-based strategy shares.
How:   aiofiles for all reads/writes, atomic writes (temp file + replace),
       tenacity retry around copies that hit transient OS errors.
Who:   SaveOrchestrator (input validation), Gallery/AppPrivate/RootFolder/
       CustomLocation strategies (copies), the export route.

Write Model:
    1. The photo reference is resolved to a local path and checked:
       supported extension, exists, regular file.
    2. A destination name is picked from the attempt's candidates
       (canonical name, then timestamp-suffixed). Existing files are never
       overwritten; if every candidate is taken the write fails.
    3. Bytes go to a hidden temp file next to the destination, then
       os.replace() publishes it. A reader never sees a half-written photo.
"""

import base64
import logging
import uuid
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import unquote, urlparse

import aiofiles
import aiofiles.os
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from photofiler.config import settings
from photofiler.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# ── Allowed Photo Types ───────────────────────────────────────────────────
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

# Transient errors worth retrying; everything else fails the copy at once
TRANSIENT_IO_ERRORS = (BlockingIOError, InterruptedError)


def path_from_uri(uri: str) -> Path:
    """file:// URI or plain path → Path. Other schemes are rejected."""
    if uri.startswith("file://"):
        return Path(unquote(urlparse(uri).path))
    if "://" in uri:
        raise InvalidInputError(
            message="The photo reference is not a local file.",
            field="photo_uri",
            context={"uri": uri},
        )
    return Path(uri)


class FileService:
    """
    Async file operations scoped to the configured cache directory.

    Temporary copies (gallery staging) live under `cache_root`; everything
    else is addressed by absolute destination paths chosen by the strategies.
    """

    def __init__(self, cache_root: Optional[str] = None):
        self.cache_root = Path(cache_root or settings.cache_root).resolve()
        logger.info("FileService initialized with cache_root=%s", self.cache_root)

    def validate_extension(self, filename: str) -> str:
        """
        Checks the extension against the supported photo types.

        Returns: Normalized extension (lowercase with dot).
        Raises:  InvalidInputError if the type is not supported.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise InvalidInputError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="photo_uri",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    async def resolve_photo(self, photo_uri: str) -> Path:
        """
        Resolves and validates a photo reference.

        Raises:
            InvalidInputError: empty reference, unsupported type, missing or
            unreadable file.
        """
        if not photo_uri or not photo_uri.strip():
            raise InvalidInputError(message="No photo was provided.", field="photo_uri")

        path = path_from_uri(photo_uri.strip())
        self.validate_extension(path.name)

        if not await aiofiles.os.path.isfile(path):
            raise InvalidInputError(
                message="The photo could not be read. Please capture or pick it again.",
                field="photo_uri",
                context={"path": str(path)},
            )
        return path

    async def read_bytes(self, path: PathLike) -> bytes:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def read_base64(self, path: PathLike) -> str:
        """Full file content, base64-encoded (content:// writes take text)."""
        content = await self.read_bytes(path)
        return base64.b64encode(content).decode("ascii")

    async def ensure_directory(self, directory: PathLike) -> Path:
        """Creates `directory` and its parents; an existing directory is fine."""
        await aiofiles.os.makedirs(directory, exist_ok=True)
        return Path(directory)

    async def first_free_path(self, directory: PathLike, names: Iterable[str]) -> Path:
        """
        First candidate name not yet present in `directory`.

        Raises:
            FileExistsError: every candidate is taken.
        """
        tried = []
        for name in names:
            candidate = Path(directory) / name
            if not await aiofiles.os.path.exists(candidate):
                return candidate
            tried.append(name)
        raise FileExistsError(f"All candidate names are taken in {directory}: {tried}")

    async def write_atomic(self, destination: PathLike, content: bytes) -> Path:
        """
        Writes `content` to a temp file beside `destination`, then replaces.
        The temp file is removed if the write fails.
        """
        destination = Path(destination)
        tmp = destination.with_name(f".{destination.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(content)
            await aiofiles.os.replace(tmp, destination)
        except Exception:
            await self.cleanup_file(tmp)
            raise
        return destination

    @retry(
        retry=retry_if_exception_type(TRANSIENT_IO_ERRORS),
        stop=stop_after_attempt(settings.io_retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.io_retry_min_wait,
            max=settings.io_retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def copy_file(self, source: PathLike, destination: PathLike) -> Path:
        """Copies `source` to `destination` atomically, retrying transient errors."""
        content = await self.read_bytes(source)
        written = await self.write_atomic(destination, content)
        logger.debug("Copied %s → %s (%d bytes)", source, written, len(content))
        return written

    async def copy_into(
        self, source: PathLike, directory: PathLike, names: Iterable[str]
    ) -> Path:
        """
        Copies `source` into `directory` under the first free candidate name.

        Returns: Absolute path of the new file.
        """
        await self.ensure_directory(directory)
        destination = await self.first_free_path(directory, names)
        return await self.copy_file(source, destination)

    async def make_temp_copy(self, source: PathLike) -> Path:
        """Copies `source` into the cache directory under a unique name."""
        await self.ensure_directory(self.cache_root)
        suffix = Path(source).suffix or ".jpg"
        return await self.copy_file(source, self.cache_root / f"{uuid.uuid4().hex}{suffix}")

    async def cleanup_file(self, file_path: PathLike) -> None:
        """
        Removes a file if present. Best effort: failures are logged only.
        """
        try:
            if await aiofiles.os.path.exists(file_path):
                await aiofiles.os.remove(file_path)
                logger.debug("Cleaned up file: %s", Path(file_path).name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
