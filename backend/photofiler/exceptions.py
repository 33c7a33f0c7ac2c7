"""
PhotoFiler Backend: Custom Exception Hierarchy
================================================

What:  Defines application-specific exceptions for the save flow.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       HTTP status codes and structured JSON bodies.
Who:   Raised by services and strategies; caught by the orchestrator (fallback
       chain) and by the global handlers.

Exception Hierarchy:
    PhotoFilerError (base)
    ├── InvalidInputError              → 400  terminal, no retry offered
    ├── PermissionDeniedError          → 403  terminal, user sent to settings
    ├── DirectoryAccessRevokedError    → 409  recoverable, re-pick the folder
    ├── StrategyFailureError           → 500  recoverable, next backend tried
    ├── AllBackendsExhaustedError      → 500  terminal, retry via gallery offered
    ├── SaveInProgressError            → 409  a save for this photo is running
    ├── SaveCancelledError             → 409  user dismissed the backend prompt
    ├── BackendSelectionRequiredError  → 409  caller must pick from the options
    ├── BackendUnavailableError        → 501  limitation or unimplemented stub
    ├── NotFoundError                  → 404
    └── DatabaseError                  → 500

Message policy:
    `message` names the attempted destination and is safe to show to users.
    Raw exception text only goes into `context` and the logs.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Error taxonomy reported as `details.kind` of a failed save."""

    INVALID_INPUT = "invalid_input"
    PERMISSION_DENIED = "permission_denied"
    DIRECTORY_ACCESS_REVOKED = "directory_access_revoked"
    STRATEGY_FAILURE = "strategy_failure"
    ALL_BACKENDS_EXHAUSTED = "all_backends_exhausted"


class PhotoFilerError(Exception):
    """
    Base exception for all PhotoFiler application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT shown to the user)
    """

    # Reported as details.kind; None for errors outside the taxonomy.
    kind: Optional[ErrorKind] = None

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidInputError(PhotoFilerError):
    """
    Raised when the save request itself is unusable.

    When:    No photo reference, unreadable or unsupported photo, empty label.
    Recovery: None within the flow; the user must fix the input.
    """

    kind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str = "The photo or label is invalid",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class PermissionDeniedError(PhotoFilerError):
    """
    Raised when the media or storage permission is refused.

    Terminal for the current attempt. The message directs the user to the
    system settings; retrying inside the same flow cannot succeed.
    """

    kind = ErrorKind.PERMISSION_DENIED

    def __init__(
        self,
        permission: str = "media library",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Permission to access the {permission} was denied. "
            "Enable it in the system settings and try again."
        )
        ctx = context or {}
        ctx["permission"] = permission
        super().__init__(message=message, context=ctx)
        self.permission = permission


class DirectoryAccessRevokedError(PhotoFilerError):
    """
    Raised when a directory reference fails its live-access probe.

    Recoverable: the user is asked to pick the folder again.
    """

    kind = ErrorKind.DIRECTORY_ACCESS_REVOKED

    def __init__(
        self,
        display_name: str = "selected folder",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Access to the folder '{display_name}' is no longer available. "
            "Please select the folder again."
        )
        super().__init__(message=message, context=context)
        self.display_name = display_name


class StrategyFailureError(PhotoFilerError):
    """
    Raised by a save strategy when its write did not complete.

    Every exception inside a strategy is converted to this class at the
    strategy boundary. The orchestrator treats it as recoverable and moves on
    to the next backend.
    """

    kind = ErrorKind.STRATEGY_FAILURE

    def __init__(
        self,
        backend: Any,
        destination: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or f"Could not save the photo to {destination}.",
            context=context,
        )
        self.backend = backend
        self.destination = destination


class AllBackendsExhaustedError(PhotoFilerError):
    """
    Raised when every candidate backend failed.

    The combined message lists each attempted destination. The response
    offers a last-resort gallery retry outside the normal chain.
    """

    kind = ErrorKind.ALL_BACKENDS_EXHAUSTED

    def __init__(
        self,
        failures: List[StrategyFailureError],
        context: Optional[Dict[str, Any]] = None,
    ):
        destinations = ", ".join(f.destination for f in failures) or "no destination"
        message = (
            f"The photo could not be saved. Tried: {destinations}. "
            "You can retry by saving to the device gallery."
        )
        ctx = context or {}
        ctx["attempted"] = [str(getattr(f.backend, "value", f.backend)) for f in failures]
        ctx["retry_via_gallery"] = True
        super().__init__(message=message, context=ctx)
        self.failures = failures

    @property
    def failed_backend(self) -> Any:
        """The last backend tried before giving up."""
        return self.failures[-1].backend if self.failures else None


class SaveInProgressError(PhotoFilerError):
    """Raised when a save for the same photo is already running."""

    def __init__(self, photo_uri: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["photo_uri"] = photo_uri
        super().__init__(
            message="This photo is already being saved. Please wait for it to finish.",
            context=ctx,
        )


class SaveCancelledError(PhotoFilerError):
    """Raised when the user dismisses the backend choice before saving starts."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Save cancelled.", context=context)


class BackendSelectionRequiredError(PhotoFilerError):
    """
    Raised when no backend was chosen and none can be picked automatically.

    `options` holds the ordered backend options the user should choose from.
    """

    def __init__(
        self,
        options: List[Dict[str, Any]],
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["options"] = options
        super().__init__(
            message="Where would you like to save the photo?",
            context=ctx,
        )
        self.options = options


class BackendUnavailableError(PhotoFilerError):
    """
    Raised when a backend cannot be used on this platform or runtime.

    The message is the user-facing limitation explanation (for example, folder
    picking inside a developer-preview runtime, or the cloud upload stub).
    """

    def __init__(
        self,
        backend: Any,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["backend"] = str(getattr(backend, "value", backend))
        super().__init__(message=message, context=ctx)
        self.backend = backend


class NotFoundError(PhotoFilerError):
    """Raised when a requested resource does not exist."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(PhotoFilerError):
    """
    Raised when the persisted key-value store fails unexpectedly.

    The message returned to the client is always generic; details are
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
