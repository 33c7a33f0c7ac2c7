"""
PhotoFiler Backend: Backend Resolver Tests
============================================

What we test:
    ✅ Priority order: RootFolder → Gallery → AppPrivate → CustomLocation
    ✅ RootFolder only when the root folder is live
    ✅ Restricted runtime and missing pickers become limitation messages
    ✅ Cloud is never offered
    ✅ Fallback chain skips interactive backends
    ✅ Capability profiles per platform
"""

import pytest

from photofiler.config import Settings
from photofiler.schemas.storage import BackendKind
from photofiler.services.backend_resolver import (
    CLOUD_MESSAGE,
    NO_PERSISTENT_HANDLES_MESSAGE,
    NO_PICKER_MESSAGE,
    NO_ROOT_FOLDER_MESSAGE,
    RESTRICTED_RUNTIME_MESSAGE,
    ResolverState,
    available_backends,
)
from photofiler.services.platform import PlatformCapabilities

ANDROID = PlatformCapabilities(
    name="android",
    supports_persistent_directory_handles=True,
    has_native_folder_picker=True,
    has_share_sheet=True,
)
IOS = PlatformCapabilities(
    name="ios",
    supports_persistent_directory_handles=False,
    has_native_folder_picker=False,
    has_share_sheet=True,
)
BARE = PlatformCapabilities(
    name="bare",
    supports_persistent_directory_handles=True,
    has_native_folder_picker=False,
    has_share_sheet=False,
)


class TestAvailableBackends:
    def test_live_root_comes_first(self):
        resolution = available_backends(ResolverState(ANDROID, root_folder_live=True))
        assert resolution.kinds == [
            BackendKind.ROOT_FOLDER,
            BackendKind.GALLERY,
            BackendKind.APP_PRIVATE,
            BackendKind.CUSTOM_LOCATION,
        ]
        assert resolution.options[-1].interactive is True

    def test_no_root_folder(self):
        resolution = available_backends(ResolverState(ANDROID))
        assert BackendKind.ROOT_FOLDER not in resolution.kinds
        assert resolution.explain(BackendKind.ROOT_FOLDER) == NO_ROOT_FOLDER_MESSAGE

    def test_restricted_runtime(self):
        resolution = available_backends(ResolverState(ANDROID, restricted_runtime=True))
        assert resolution.kinds == [BackendKind.GALLERY, BackendKind.APP_PRIVATE]
        assert resolution.explain(BackendKind.ROOT_FOLDER) == RESTRICTED_RUNTIME_MESSAGE
        assert resolution.explain(BackendKind.CUSTOM_LOCATION) == RESTRICTED_RUNTIME_MESSAGE

    def test_platform_without_persistent_handles(self):
        resolution = available_backends(ResolverState(IOS))
        assert resolution.kinds == [BackendKind.GALLERY, BackendKind.APP_PRIVATE, BackendKind.CUSTOM_LOCATION]
        assert resolution.explain(BackendKind.ROOT_FOLDER) == NO_PERSISTENT_HANDLES_MESSAGE

    def test_no_picker_and_no_share_sheet(self):
        resolution = available_backends(ResolverState(BARE))
        assert BackendKind.CUSTOM_LOCATION not in resolution.kinds
        assert resolution.explain(BackendKind.CUSTOM_LOCATION) == NO_PICKER_MESSAGE

    @pytest.mark.parametrize("caps", [ANDROID, IOS, BARE])
    def test_cloud_is_never_offered(self, caps):
        resolution = available_backends(ResolverState(caps, root_folder_live=True))
        assert not resolution.offers(BackendKind.CLOUD)
        assert resolution.explain(BackendKind.CLOUD) == CLOUD_MESSAGE

    def test_offered_backend_has_no_explanation(self):
        resolution = available_backends(ResolverState(ANDROID))
        assert resolution.explain(BackendKind.GALLERY) is None

    def test_titles(self):
        resolution = available_backends(ResolverState(ANDROID, root_folder_live=True))
        assert [o.title for o in resolution.options] == [
            "Root Folder", "Device Gallery", "App Storage", "Custom Location",
        ]


class TestFallbacks:
    def test_chosen_first_then_non_interactive(self):
        resolution = available_backends(ResolverState(ANDROID, root_folder_live=True))
        assert resolution.fallbacks(BackendKind.GALLERY) == [
            BackendKind.GALLERY,
            BackendKind.ROOT_FOLDER,
            BackendKind.APP_PRIVATE,
        ]

    def test_interactive_choice_keeps_its_place(self):
        resolution = available_backends(ResolverState(ANDROID))
        assert resolution.fallbacks(BackendKind.CUSTOM_LOCATION) == [
            BackendKind.CUSTOM_LOCATION,
            BackendKind.GALLERY,
            BackendKind.APP_PRIVATE,
        ]


class TestPlatformCapabilities:
    def test_android_modern(self):
        caps = PlatformCapabilities.from_settings(Settings(platform="android", android_api_level=34))
        assert caps.supports_persistent_directory_handles
        assert caps.has_native_folder_picker
        assert not caps.requires_legacy_storage_permission
        assert caps.gallery_page_size == 12

    def test_android_legacy_storage(self):
        caps = PlatformCapabilities.from_settings(Settings(platform="android", android_api_level=30))
        assert caps.requires_legacy_storage_permission

    def test_ios(self):
        caps = PlatformCapabilities.from_settings(Settings(platform="iOS"))
        assert caps.name == "ios"
        assert not caps.supports_persistent_directory_handles
        assert not caps.has_native_folder_picker
        assert caps.has_share_sheet
        assert caps.gallery_page_size == 20

    def test_unknown_platform_rejected(self):
        with pytest.raises(ValueError):
            Settings(platform="symbian")
