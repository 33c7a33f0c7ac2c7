"""
PhotoFiler Backend: Storage Domain & API Schemas
==================================================

What:  Pydantic models shared by the save core and the HTTP layer.
How:   The same models are returned by services and serialized by FastAPI,
       so the API contract and the core's result types never drift apart.

Contents:
    BackendKind / BackendOption   Save destinations and how they are offered
    DirectoryReference            Persisted root folder handle {uri, name}
    PickedLocation                Result of an interactive folder/file pick
    SaveRequest                   Input from the capture client
    SaveOutcome                   Success descriptor of a save
    MediaAsset / AssetPage        Gallery listing
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class BackendKind(str, Enum):
    """One destination strategy for durably storing a photo."""

    ROOT_FOLDER = "root_folder"
    GALLERY = "gallery"
    APP_PRIVATE = "app_private"
    CUSTOM_LOCATION = "custom_location"
    CLOUD = "cloud"


# Titles shown in the "Where would you like to save the photo?" prompt
BACKEND_TITLES = {
    BackendKind.ROOT_FOLDER: "Root Folder",
    BackendKind.GALLERY: "Device Gallery",
    BackendKind.APP_PRIVATE: "App Storage",
    BackendKind.CUSTOM_LOCATION: "Custom Location",
    BackendKind.CLOUD: "Cloud Upload",
}


class BackendOption(BaseModel):
    """A selectable save backend, in resolver priority order."""

    kind: BackendKind
    title: str
    interactive: bool = Field(
        default=False,
        description="Requires user interaction mid-save (folder picker / share)",
    )


class BackendLimitation(BaseModel):
    """A backend omitted from the options, with the explanation shown on selection."""

    kind: BackendKind
    message: str


class DirectoryReference(BaseModel):
    """
    A user-granted writable directory.

    Persisted as {"uri": ..., "name": ...}. `handle` is either path-like
    (file:// URI or absolute path) or content-addressed (content:// URI).
    """

    handle: str = Field(alias="uri", min_length=1, description="Opaque directory URI")
    display_name: str = Field(alias="name", description="Human-readable folder name")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def is_content_uri(self) -> bool:
        return self.handle.startswith("content://")

    def to_record(self) -> str:
        """JSON text in the persisted record shape."""
        return self.model_dump_json(by_alias=True)


class PickedLocation(BaseModel):
    """
    What the folder/file picker returned.

    Pickers that can only return a document yield the document itself;
    `is_directory=False` means the parent directory is the target.
    """

    uri: str = Field(min_length=1)
    name: Optional[str] = None
    is_directory: bool = True


class SaveRequest(BaseModel):
    """Input from the UI/capture collaborator."""

    photo_uri: str = Field(default="", description="file:// URI or path of the photo")
    label: str = Field(default="", description="User-supplied label")
    folder_name_hint: Optional[str] = Field(
        default=None,
        description="Album/folder name; defaults to the label",
    )
    backend: Optional[BackendKind] = Field(
        default=None,
        description="Backend chosen by the user; omit to let a live root folder win",
    )
    picked_location: Optional[PickedLocation] = Field(
        default=None,
        description=(
            "Folder picked client-side: the custom location target, or the new "
            "root folder when the stored one was revoked"
        ),
    )


class SaveOutcome(BaseModel):
    """
    Result of a save request.

    Only successes are returned. A failed save raises; the error handlers
    report it as an ErrorResponse whose details carry `kind` (ErrorKind) and,
    where known, `failed_backend` and `retry_via_gallery`.
    """

    success: bool
    backend: Optional[BackendKind] = None
    destination_description: Optional[str] = None
    file_name: Optional[str] = None
    message: Optional[str] = None
    reselect_root_folder: bool = Field(
        default=False,
        description="The stored root folder was revoked; prompt the user to pick it again",
    )

    @classmethod
    def succeeded(
        cls, backend: BackendKind, destination: str, file_name: Optional[str] = None
    ) -> "SaveOutcome":
        return cls(
            success=True,
            backend=backend,
            destination_description=destination,
            file_name=file_name,
            message=f"Photo saved to {destination}" + (f" as {file_name}." if file_name else "."),
        )


class BackendsResponse(BaseModel):
    """Ordered backend options plus limitation messages."""

    options: List[BackendOption]
    limitations: List[BackendLimitation] = Field(default_factory=list)
    root_folder: Optional[DirectoryReference] = None


class RootFolderStatus(BaseModel):
    """Current root folder and whether it still grants access."""

    root_folder: Optional[DirectoryReference] = None
    live: bool = False
    message: Optional[str] = None


class MediaAsset(BaseModel):
    """A photo registered in the media library."""

    id: str = Field(description="Library-relative path, stable until the asset moves")
    uri: str
    filename: str
    album: Optional[str] = None
    creation_time: datetime


class MediaAlbum(BaseModel):
    id: str
    title: str
    asset_count: int = 0


class AssetPage(BaseModel):
    """Cursor-paged slice of the media library, newest first."""

    assets: List[MediaAsset]
    end_cursor: Optional[str] = None
    has_next_page: bool = False


class LabelSuggestion(BaseModel):
    label: str
    sanitized: str


class ErrorResponse(BaseModel):
    """Standardized error response format for all API errors."""

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: dict = Field(description="Writable state per storage root")
    uptime_seconds: float
