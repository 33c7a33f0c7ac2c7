"""
PhotoFiler Backend: Backend Resolver
======================================

What:  Enumerates the save backends usable right now, in priority order.
How:   Pure function of ResolverState (capabilities, live root folder,
       restricted runtime). No I/O; the orchestrator probes the root folder
       before building the state.

Order:
    RootFolder (only when live) → Gallery → AppPrivate → CustomLocation

    CustomLocation is interactive and always last. Backends that cannot be
    offered are reported as limitations, with the message shown when the
    user tries to pick them anyway.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from photofiler.schemas.storage import (
    BACKEND_TITLES,
    BackendKind,
    BackendLimitation,
    BackendOption,
)
from photofiler.services.platform import PlatformCapabilities

RESTRICTED_RUNTIME_MESSAGE = (
    "Folder selection is not available in this preview runtime. "
    "Install the full app build to save into a folder of your choice."
)
NO_PICKER_MESSAGE = (
    "This device offers neither a folder picker nor a share sheet, "
    "so a custom location cannot be used."
)
NO_ROOT_FOLDER_MESSAGE = "No root folder is selected. Select a root folder first."
NO_PERSISTENT_HANDLES_MESSAGE = (
    "This platform cannot keep access to a folder between sessions. "
    "Save to the gallery or app storage instead."
)
CLOUD_MESSAGE = "Cloud upload is not available yet."


@dataclass(frozen=True)
class ResolverState:
    capabilities: PlatformCapabilities
    root_folder_live: bool = False
    restricted_runtime: bool = False


@dataclass
class BackendResolution:
    options: List[BackendOption]
    limitations: List[BackendLimitation] = field(default_factory=list)

    @property
    def kinds(self) -> List[BackendKind]:
        return [option.kind for option in self.options]

    def offers(self, kind: BackendKind) -> bool:
        return kind in self.kinds

    def explain(self, kind: BackendKind) -> Optional[str]:
        """Limitation message for an omitted backend, None when offered."""
        for limitation in self.limitations:
            if limitation.kind == kind:
                return limitation.message
        return None

    def fallbacks(self, chosen: BackendKind) -> List[BackendKind]:
        """Chosen backend first, then the remaining non-interactive options."""
        rest = [
            option.kind
            for option in self.options
            if option.kind != chosen and not option.interactive
        ]
        return [chosen] + rest


def _option(kind: BackendKind, interactive: bool = False) -> BackendOption:
    return BackendOption(kind=kind, title=BACKEND_TITLES[kind], interactive=interactive)


def available_backends(state: ResolverState) -> BackendResolution:
    options: List[BackendOption] = []
    limitations: List[BackendLimitation] = []
    caps = state.capabilities

    if state.root_folder_live:
        options.append(_option(BackendKind.ROOT_FOLDER))
    elif state.restricted_runtime:
        limitations.append(BackendLimitation(kind=BackendKind.ROOT_FOLDER, message=RESTRICTED_RUNTIME_MESSAGE))
    elif not caps.supports_persistent_directory_handles:
        limitations.append(
            BackendLimitation(kind=BackendKind.ROOT_FOLDER, message=NO_PERSISTENT_HANDLES_MESSAGE)
        )
    else:
        limitations.append(BackendLimitation(kind=BackendKind.ROOT_FOLDER, message=NO_ROOT_FOLDER_MESSAGE))

    options.append(_option(BackendKind.GALLERY))
    options.append(_option(BackendKind.APP_PRIVATE))

    if state.restricted_runtime:
        limitations.append(
            BackendLimitation(kind=BackendKind.CUSTOM_LOCATION, message=RESTRICTED_RUNTIME_MESSAGE)
        )
    elif caps.has_native_folder_picker or caps.has_share_sheet:
        options.append(_option(BackendKind.CUSTOM_LOCATION, interactive=True))
    else:
        limitations.append(BackendLimitation(kind=BackendKind.CUSTOM_LOCATION, message=NO_PICKER_MESSAGE))

    limitations.append(BackendLimitation(kind=BackendKind.CLOUD, message=CLOUD_MESSAGE))
    return BackendResolution(options=options, limitations=limitations)
