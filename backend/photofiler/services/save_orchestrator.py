"""
PhotoFiler Backend: Save Orchestrator
=======================================

What:  The facade the capture client calls to file a labeled photo.
How:   Runs one save as a state machine and walks the fallback chain of
       strategies until one writes the photo or all of them have failed.
Who:   Route handlers (photos, root folder, backends, gallery).
When:  Every save request; root folder selection and startup loading.

Save Flow:
    ┌──────────┐   ┌────────────┐   ┌─────────────┐   ┌──────────┐
    │ Validate │──▶│ Permission │──▶│   Select    │──▶│  Saving  │──▶ succeeded
    │  input   │   │  request   │   │  backend    │   │  chain   │
    └──────────┘   └────────────┘   └─────────────┘   └──────────┘
         │               │                 │                │
         ▼               ▼                 ▼                ▼
    InvalidInput   PermissionDenied   cancel / chooser   AllBackendsExhausted
    (terminal)     (terminal)         (before saving)    (terminal, gallery retry)

Backend selection:
    A stored root folder is probed first. Live and no explicit choice →
    RootFolder is used without asking. Dead → the reference is cleared (store
    and permission) and the folder picker is offered. A newly picked live
    folder becomes the root and the save proceeds into it. When the pick is
    dismissed or unusable the outcome carries `reselect_root_folder` and the
    user chooses from the remaining options.

Fallback chain:
    chosen backend, then the remaining non-interactive options in resolver
    order. Strictly sequential. Every attempt shares one SaveContext and one
    PhotoFileName.

Concurrency:
    A second save of a photo that is still being saved raises
    SaveInProgressError. All other saves and every root folder mutation are
    serialized by one asyncio.Lock.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Set, Tuple

from photofiler.config import Settings, settings
from photofiler.exceptions import (
    AllBackendsExhaustedError,
    BackendUnavailableError,
    DatabaseError,
    DirectoryAccessRevokedError,
    InvalidInputError,
    PermissionDeniedError,
    PhotoFilerError,
    SaveCancelledError,
    SaveInProgressError,
    StrategyFailureError,
)
from photofiler.schemas.storage import (
    BACKEND_TITLES,
    BackendKind,
    DirectoryReference,
    PickedLocation,
    RootFolderStatus,
    SaveOutcome,
    SaveRequest,
)
from photofiler.services.backend_resolver import (
    NO_PERSISTENT_HANDLES_MESSAGE,
    RESTRICTED_RUNTIME_MESSAGE,
    BackendResolution,
    ResolverState,
    available_backends,
)
from photofiler.services.documents import DocumentProvider, LocalDocumentProvider
from photofiler.services.file_service import FileService, path_from_uri
from photofiler.services.handle_store import DirectoryHandleStore
from photofiler.services.interaction import BackendChooser, FolderPicker, ShareSheet
from photofiler.services.media_library import LocalMediaLibrary, MediaLibrary
from photofiler.services.naming import PhotoFileName
from photofiler.services.permission_verifier import PermissionVerifier
from photofiler.services.platform import (
    PermissionGateway,
    PlatformCapabilities,
    default_permission_gateway,
)
from photofiler.services.strategies import (
    AppPrivateStrategy,
    CloudUploadStrategy,
    CustomLocationStrategy,
    GalleryStrategy,
    RootFolderStrategy,
    SaveContext,
    SaveStrategy,
)

logger = logging.getLogger(__name__)

REVOKED_NOTICE = (
    "Access to the previously selected root folder was lost. "
    "Please select the root folder again."
)


class SaveState(str, Enum):
    IDLE = "idle"
    VALIDATING_INPUT = "validating_input"
    REQUESTING_PERMISSION = "requesting_permission"
    SELECTING_BACKEND = "selecting_backend"
    SAVING = "saving"
    SUCCEEDED = "succeeded"
    FAILED_RECOVERABLE = "failed_recoverable"
    FAILED_TERMINAL = "failed_terminal"


class SaveOrchestrator:
    """
    Owns the root folder reference and runs saves.

    Collaborators are injected so tests can swap any of them; see
    build_orchestrator() for the production wiring.
    """

    def __init__(
        self,
        store: DirectoryHandleStore,
        verifier: PermissionVerifier,
        documents: DocumentProvider,
        permissions: PermissionGateway,
        strategies: Dict[BackendKind, SaveStrategy],
        capabilities: PlatformCapabilities,
        files: FileService,
        library: MediaLibrary,
        root_folder_key: str = settings.root_folder_key,
        restricted_runtime: bool = False,
        device_model: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.verifier = verifier
        self.documents = documents
        self.permissions = permissions
        self.strategies = strategies
        self.capabilities = capabilities
        self.files = files
        self.library = library
        self.root_folder_key = root_folder_key
        self.restricted_runtime = restricted_runtime
        self.device_model = device_model
        self.clock = clock

        self._root_folder: Optional[DirectoryReference] = None
        self._state = SaveState.IDLE
        self._lock = asyncio.Lock()
        self._in_flight: Set[str] = set()

    # ── Observable state ──────────────────────────────────────────────────
    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def is_loading(self) -> bool:
        """True while any save is queued or running."""
        return bool(self._in_flight)

    @property
    def root_folder(self) -> Optional[DirectoryReference]:
        return self._root_folder

    def _transition(self, state: SaveState) -> None:
        logger.debug("Save state %s → %s", self._state.value, state.value)
        self._state = state

    # ── Root folder management ────────────────────────────────────────────
    async def load_root_folder(self) -> Optional[DirectoryReference]:
        """Startup: restores the persisted root folder (verified on first use)."""
        async with self._lock:
            self._root_folder = await self.store.load(self.root_folder_key)
        if self._root_folder:
            logger.info("Root folder restored: %s", self._root_folder.display_name)
        return self._root_folder

    async def root_folder_status(self) -> RootFolderStatus:
        ref = self._root_folder
        if ref is None:
            return RootFolderStatus(message="No root folder is selected.")
        live = await self.verifier.has_live_access(ref)
        message = None if live else REVOKED_NOTICE
        return RootFolderStatus(root_folder=ref, live=live, message=message)

    async def select_root_folder(self, picked: PickedLocation) -> DirectoryReference:
        """
        Persists the picked folder as the root folder, replacing any previous
        one. A picked document selects its parent directory.

        Raises:
            BackendUnavailableError: folder selection impossible on this runtime
            DirectoryAccessRevokedError: the picked folder cannot be listed
        """
        ref = self._selectable_reference(picked)
        async with self._lock:
            await self._adopt_root_folder(ref)
        logger.info("Root folder selected: %s (%s)", ref.display_name, ref.handle)
        return ref

    def _selectable_reference(self, picked: PickedLocation) -> DirectoryReference:
        if self.restricted_runtime:
            raise BackendUnavailableError(BackendKind.ROOT_FOLDER, RESTRICTED_RUNTIME_MESSAGE)
        if not self.capabilities.supports_persistent_directory_handles:
            raise BackendUnavailableError(BackendKind.ROOT_FOLDER, NO_PERSISTENT_HANDLES_MESSAGE)
        try:
            return self._reference_for(picked)
        except ValueError as e:
            raise InvalidInputError(
                message="The picked location is not a folder this app can use.",
                field="uri",
                context={"uri": picked.uri, "error": str(e)},
            )

    async def _adopt_root_folder(self, ref: DirectoryReference) -> None:
        """Grant, probe and persist `ref` as the root folder. Caller holds the lock."""
        if ref.is_content_uri:
            try:
                await self.documents.take_persistable_permission(ref.handle)
            except Exception as e:
                logger.warning("Could not persist access to %s: %s", ref.handle, e)
                raise DirectoryAccessRevokedError(ref.display_name, context={"error": str(e)})
        if not await self.verifier.has_live_access(ref):
            raise DirectoryAccessRevokedError(ref.display_name, context={"uri": ref.handle})

        previous = self._root_folder
        await self.store.save(self.root_folder_key, ref)
        self._root_folder = ref
        if previous and previous.handle != ref.handle:
            await self._release(previous)

    async def _reselect_root_folder(self, picker: FolderPicker) -> bool:
        """
        Offers a new root folder after the old one was revoked. True when the
        picked folder is now the live root. Caller holds the lock.
        """
        picked = await picker.pick()
        if picked is None:
            logger.info("Root folder reselection dismissed")
            return False
        try:
            ref = self._selectable_reference(picked)
            await self._adopt_root_folder(ref)
        except PhotoFilerError as e:
            logger.warning("Root folder reselection failed: %s", e.message)
            return False
        logger.info("Root folder reselected: %s (%s)", ref.display_name, ref.handle)
        return True

    async def clear_root_folder(self) -> None:
        async with self._lock:
            previous = self._root_folder
            await self.store.clear(self.root_folder_key)
            self._root_folder = None
            if previous:
                await self._release(previous)
        logger.info("Root folder cleared")

    def _reference_for(self, picked: PickedLocation) -> DirectoryReference:
        if picked.uri.startswith("content://"):
            handle = picked.uri if picked.is_directory else self.documents.parent_tree_uri(picked.uri)
            fallback_name = self.documents.display_name(handle)
        else:
            path = path_from_uri(picked.uri)
            if not picked.is_directory:
                path = path.parent
            handle, fallback_name = str(path), path.name
        name = picked.name if picked.is_directory and picked.name else fallback_name
        return DirectoryReference(handle=handle, display_name=name or handle)

    async def _release(self, ref: DirectoryReference) -> None:
        """Best-effort release of a content URI grant."""
        if not ref.is_content_uri:
            return
        try:
            await self.documents.release_persistable_permission(ref.handle)
        except Exception as e:
            logger.warning("Could not release permission for %s: %s", ref.handle, e)

    async def _probe_root_folder(self) -> Tuple[bool, bool]:
        """
        → (live, revoked). A dead reference is cleared from the store and its
        permission released. Caller holds the lock.
        """
        ref = self._root_folder
        if ref is None:
            return False, False
        if await self.verifier.has_live_access(ref):
            return True, False

        logger.warning("Root folder '%s' is no longer accessible; clearing it", ref.display_name)
        self._root_folder = None
        try:
            await self.store.clear(self.root_folder_key)
        except DatabaseError as e:
            logger.error("Failed to clear revoked root folder: %s", e.context)
        await self._release(ref)
        return False, True

    # ── Resolution ────────────────────────────────────────────────────────
    def _resolve(self, root_live: bool) -> BackendResolution:
        return available_backends(
            ResolverState(
                capabilities=self.capabilities,
                root_folder_live=root_live,
                restricted_runtime=self.restricted_runtime,
            )
        )

    async def available_backends(self) -> BackendResolution:
        """Current options without mutating state (listing only)."""
        ref = self._root_folder
        live = bool(ref) and await self.verifier.has_live_access(ref)
        return self._resolve(live)

    # ── Saving ────────────────────────────────────────────────────────────
    async def _validate(self, request: SaveRequest) -> Path:
        self._transition(SaveState.VALIDATING_INPUT)
        photo_path = await self.files.resolve_photo(request.photo_uri)
        if not request.label or not request.label.strip():
            raise InvalidInputError(message="Please enter a label for the photo.", field="label")
        return photo_path

    async def _require_permissions(self) -> None:
        self._transition(SaveState.REQUESTING_PERMISSION)
        if not await self.permissions.request_media_permission():
            raise PermissionDeniedError("media library")
        if (
            self.capabilities.requires_legacy_storage_permission
            and not await self.permissions.request_legacy_storage_permission()
        ):
            raise PermissionDeniedError("device storage")

    def _context(
        self,
        request: SaveRequest,
        photo_path: Path,
        picker: Optional[FolderPicker] = None,
        share_sheet: Optional[ShareSheet] = None,
    ) -> SaveContext:
        return SaveContext(
            photo_path=photo_path,
            label=request.label.strip(),
            file_name=PhotoFileName.build(self.device_model, self.clock),
            folder_name_hint=request.folder_name_hint,
            root_folder=self._root_folder,
            picker=picker,
            share_sheet=share_sheet,
        )

    async def save_labeled_photo(
        self,
        request: SaveRequest,
        chooser: BackendChooser,
        picker: Optional[FolderPicker] = None,
        share_sheet: Optional[ShareSheet] = None,
    ) -> SaveOutcome:
        """
        Files one labeled photo.

        Returns:
            SaveOutcome of the backend that wrote the photo.

        Raises:
            InvalidInputError, PermissionDeniedError: terminal
            SaveCancelledError: the backend prompt was dismissed
            BackendSelectionRequiredError: the chooser needs the client to pick
            BackendUnavailableError: the chosen backend is not offered
            AllBackendsExhaustedError: every candidate failed
            SaveInProgressError: this photo is already being saved
        """
        return await self._guarded(request, self._save(request, chooser, picker, share_sheet))

    async def retry_via_gallery(self, request: SaveRequest) -> SaveOutcome:
        """Last-resort save to the gallery, outside the fallback chain."""
        return await self._guarded(request, self._save_to_gallery(request))

    async def upload_to_cloud(self) -> SaveOutcome:
        """Cloud upload is a placeholder; its strategy reports it unavailable."""
        return await self.strategies[BackendKind.CLOUD].save()

    async def _guarded(self, request: SaveRequest, flow) -> SaveOutcome:
        key = _in_flight_key(request.photo_uri)
        if key in self._in_flight:
            flow.close()
            raise SaveInProgressError(key)
        self._in_flight.add(key)
        try:
            async with self._lock:
                return await flow
        except SaveCancelledError:
            self._transition(SaveState.IDLE)
            raise
        except (InvalidInputError, PermissionDeniedError, AllBackendsExhaustedError):
            self._transition(SaveState.FAILED_TERMINAL)
            raise
        except PhotoFilerError:
            self._transition(SaveState.FAILED_RECOVERABLE)
            raise
        finally:
            self._in_flight.discard(key)

    async def _save(
        self,
        request: SaveRequest,
        chooser: BackendChooser,
        picker: Optional[FolderPicker],
        share_sheet: Optional[ShareSheet],
    ) -> SaveOutcome:
        if request.backend == BackendKind.CLOUD:
            return await self.upload_to_cloud()
        photo_path = await self._validate(request)
        await self._require_permissions()

        self._transition(SaveState.SELECTING_BACKEND)
        root_live, revoked = await self._probe_root_folder()
        if revoked and picker is not None and request.backend in (None, BackendKind.ROOT_FOLDER):
            root_live = await self._reselect_root_folder(picker)
        reselect = revoked and not root_live
        resolution = self._resolve(root_live)

        chosen = request.backend
        if chosen is None and root_live:
            chosen = BackendKind.ROOT_FOLDER
        if chosen is None or (reselect and chosen == BackendKind.ROOT_FOLDER):
            chosen = await chooser.choose(resolution.options, REVOKED_NOTICE if reselect else None)
            if chosen is None:
                raise SaveCancelledError()
        if not resolution.offers(chosen):
            message = resolution.explain(chosen) or f"{BACKEND_TITLES[chosen]} is not available."
            raise BackendUnavailableError(chosen, message)

        context = self._context(request, photo_path, picker, share_sheet)
        self._transition(SaveState.SAVING)
        failures = []
        for kind in resolution.fallbacks(chosen):
            try:
                outcome = await self.strategies[kind].save(context)
            except StrategyFailureError as e:
                logger.warning(
                    "Backend %s failed for '%s': %s %s",
                    kind.value, context.sanitized_label, e.message, e.context,
                )
                failures.append(e)
                continue

            if failures:
                logger.info(
                    "Saved via fallback backend %s after %d failure(s)", kind.value, len(failures)
                )
            self._transition(SaveState.SUCCEEDED)
            return outcome.model_copy(update={"reselect_root_folder": reselect})

        logger.error(
            "All backends failed for '%s': %s",
            context.sanitized_label, [f.destination for f in failures],
        )
        raise AllBackendsExhaustedError(failures)

    async def _save_to_gallery(self, request: SaveRequest) -> SaveOutcome:
        photo_path = await self._validate(request)
        await self._require_permissions()
        self._transition(SaveState.SAVING)
        outcome = await self.strategies[BackendKind.GALLERY].save(self._context(request, photo_path))
        self._transition(SaveState.SUCCEEDED)
        return outcome


def _in_flight_key(photo_uri: str) -> str:
    """One key per photo whether it arrives as a file:// URI or a path."""
    raw = photo_uri.strip()
    try:
        return str(path_from_uri(raw))
    except InvalidInputError:
        return raw


# ── Wiring ────────────────────────────────────────────────────────────────
def build_orchestrator(
    config: Optional[Settings] = None,
    store: Optional[DirectoryHandleStore] = None,
    permissions: Optional[PermissionGateway] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> SaveOrchestrator:
    """Production collaborators for `config` (default: the global settings)."""
    config = config or settings
    files = FileService(config.cache_root)
    documents = LocalDocumentProvider(config.documents_root, config.documents_authority)
    library = LocalMediaLibrary(config.media_library_root, files)
    capabilities = PlatformCapabilities.from_settings(config)
    strategies: Dict[BackendKind, SaveStrategy] = {
        BackendKind.ROOT_FOLDER: RootFolderStrategy(files, documents),
        BackendKind.GALLERY: GalleryStrategy(library, files),
        BackendKind.APP_PRIVATE: AppPrivateStrategy(
            config.app_private_root, config.default_folder_name, files, library
        ),
        BackendKind.CUSTOM_LOCATION: CustomLocationStrategy(capabilities, files, documents),
        BackendKind.CLOUD: CloudUploadStrategy(),
    }
    return SaveOrchestrator(
        store=store or DirectoryHandleStore(),
        verifier=PermissionVerifier(documents),
        documents=documents,
        permissions=permissions or default_permission_gateway(config),
        strategies=strategies,
        capabilities=capabilities,
        files=files,
        library=library,
        root_folder_key=config.root_folder_key,
        restricted_runtime=config.restricted_runtime,
        device_model=config.device_model,
        clock=clock,
    )


_orchestrator: Optional[SaveOrchestrator] = None


def get_save_orchestrator() -> SaveOrchestrator:
    """FastAPI dependency returning the process-wide orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator
