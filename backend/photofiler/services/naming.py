"""
PhotoFiler Backend: Label Sanitization & File Naming
======================================================

What:  Pure functions deriving folder names and photo file names.
Who:   SaveOrchestrator computes one PhotoFileName per save attempt; every
       strategy in the fallback chain reuses it.

Rules:
    sanitize_label:     lowercase, each run of non [a-z0-9] characters → "_",
                        leading/trailing "_" stripped, "" → "untitled".
                        "My Dog!" → "my_dog". Idempotent.
    device_identifier:  device model lowercased, each non [a-z0-9] character
                        → "_", missing model → "unknown_device".
    canonical name:     {device}_{YYYY-MM-DD}.jpg
    label-prefixed:     {label}_{device}_{YYYY-MM-DD}.jpg
    collisions:         {stem}_{HHMMSS}.jpg, then {stem}_{HHMMSSffffff}.jpg,
                        from the same timestamp. Never overwrite.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import Callable, Iterator, Optional
from urllib.parse import unquote, urlparse

DEFAULT_LABEL = "untitled"
UNKNOWN_DEVICE = "unknown_device"
PHOTO_EXTENSION = ".jpg"

_LABEL_RUN = re.compile(r"[^a-z0-9]+")
_DEVICE_CHAR = re.compile(r"[^a-z0-9]")


def sanitize_label(label: Optional[str]) -> str:
    """Folder/file-name-safe form of a label; never empty."""
    sanitized = _LABEL_RUN.sub("_", (label or "").lower()).strip("_")
    return sanitized or DEFAULT_LABEL


def device_identifier(model_name: Optional[str]) -> str:
    if not model_name or not model_name.strip():
        return UNKNOWN_DEVICE
    return _DEVICE_CHAR.sub("_", model_name.lower())


@dataclass(frozen=True)
class PhotoFileName:
    """
    The canonical file name of one save attempt.

    Built once by the orchestrator. `timestamp` is captured at build time and
    drives every collision suffix, so all backends in the chain derive the
    same names.
    """

    device: str
    timestamp: datetime
    extension: str = PHOTO_EXTENSION

    @classmethod
    def build(
        cls, model_name: Optional[str], clock: Callable[[], datetime] = datetime.now
    ) -> "PhotoFileName":
        return cls(device=device_identifier(model_name), timestamp=clock())

    @property
    def stem(self) -> str:
        return f"{self.device}_{self.timestamp.strftime('%Y-%m-%d')}"

    @property
    def name(self) -> str:
        """{device}_{YYYY-MM-DD}.jpg"""
        return f"{self.stem}{self.extension}"

    def with_label(self, label: str) -> str:
        """{label}_{device}_{YYYY-MM-DD}.jpg, for writes directly under a root."""
        return f"{sanitize_label(label)}_{self.name}"

    def candidates(self, name: Optional[str] = None) -> Iterator[str]:
        """
        `name` (default: the canonical name) followed by its timestamp-
        disambiguated variants, in the order they should be tried.
        """
        base = PurePosixPath(name or self.name)
        stem, suffix = base.stem, base.suffix or self.extension
        yield f"{stem}{suffix}"
        yield f"{stem}_{self.timestamp.strftime('%H%M%S')}{suffix}"
        yield f"{stem}_{self.timestamp.strftime('%H%M%S%f')}{suffix}"


def suggest_label(photo_uri: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Default label for a photo the user has not labeled yet.

    Picked photos use their base file name without extension; anything
    without a usable name (camera captures) gets Photo_<local timestamp>.
    """
    if photo_uri:
        path = unquote(urlparse(photo_uri).path) if "://" in photo_uri else photo_uri
        base = PurePosixPath(path.replace("\\", "/")).name.split(".")[0]
        if base:
            return base
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H_%M_%S")
    return f"Photo_{stamp}"
