"""
PhotoFiler Backend: Save Strategy Tests
=========================================

What:  Each strategy against real temp directories.
How:   Strategies are built directly over tmp_path roots; failures are
       injected by patching single collaborator methods.

What we test:
    ✅ Gallery: album created or appended, unique names, rollback on album failure
    ✅ AppPrivate: label folder under the container, best-effort gallery mirror
       that never leaves an unfiled asset behind
    ✅ RootFolder: path-like and content-addressed roots, subfolder reuse,
       root-level fallback name when the subfolder cannot be created
    ✅ CustomLocation: picked folder, picked document, share sheet, dismissals
    ✅ Cloud: always unavailable
    ✅ Raw exceptions leave a strategy only as StrategyFailureError
"""

from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from photofiler.exceptions import BackendUnavailableError, StrategyFailureError
from photofiler.schemas.storage import BackendKind, DirectoryReference, PickedLocation
from photofiler.services.documents import LocalDocumentProvider
from photofiler.services.file_service import FileService
from photofiler.services.interaction import ExportShareSheet, PresetFolderPicker
from photofiler.services.media_library import LocalMediaLibrary
from photofiler.services.naming import PhotoFileName
from photofiler.services.platform import PlatformCapabilities
from photofiler.services.strategies import (
    AppPrivateStrategy,
    CloudUploadStrategy,
    CustomLocationStrategy,
    GalleryStrategy,
    RootFolderStrategy,
    SaveContext,
)

STAMP = datetime(2024, 1, 1, 9, 30, 15, 123456)
CANONICAL = "device_2024-01-01.jpg"

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


@pytest.fixture
def files(tmp_path):
    return FileService(cache_root=str(tmp_path / "cache"))


@pytest.fixture
def library(tmp_path, files):
    return LocalMediaLibrary(str(tmp_path / "media"), files)


@pytest.fixture
def documents(tmp_path):
    root = tmp_path / "documents"
    (root / "Pictures").mkdir(parents=True)
    return LocalDocumentProvider(str(root), "com.photofiler.documents")


@pytest.fixture
def make_context(photo_file):
    def _make(**overrides):
        values = dict(
            photo_path=photo_file,
            label="My Dog",
            file_name=PhotoFileName.build("device", lambda: STAMP),
        )
        values.update(overrides)
        return SaveContext(**values)
    return _make


# ── Gallery ───────────────────────────────────────────────────────────────
class TestGalleryStrategy:
    @pytest.mark.asyncio
    async def test_creates_album(self, library, files, make_context, sample_image_bytes):
        outcome = await GalleryStrategy(library, files).save(make_context())

        assert outcome.success
        assert outcome.backend == BackendKind.GALLERY
        assert outcome.file_name == CANONICAL
        assert outcome.destination_description == "the gallery album 'my_dog'"
        assert (library.albums_dir / "my_dog" / CANONICAL).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_folder_hint_names_album(self, library, files, make_context):
        await GalleryStrategy(library, files).save(make_context(folder_name_hint="Pets"))
        assert (library.albums_dir / "pets" / CANONICAL).is_file()

    @pytest.mark.asyncio
    async def test_second_save_gets_distinct_name(self, library, files, make_context):
        strategy = GalleryStrategy(library, files)
        first = await strategy.save(make_context())
        second = await strategy.save(make_context())

        assert first.file_name == CANONICAL
        assert second.file_name == "device_2024-01-01_093015.jpg"
        assert len(list((library.albums_dir / "my_dog").iterdir())) == 2

    @pytest.mark.asyncio
    async def test_temp_copy_removed(self, library, files, make_context):
        await GalleryStrategy(library, files).save(make_context())
        assert list(files.cache_root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_album_failure_rolls_back_asset(self, library, files, make_context):
        with patch.object(library, "create_album", AsyncMock(side_effect=OSError("no space"))):
            with pytest.raises(StrategyFailureError) as exc_info:
                await GalleryStrategy(library, files).save(make_context())

        assert exc_info.value.backend == BackendKind.GALLERY
        assert "the gallery album 'my_dog'" in exc_info.value.message
        assert list(library.camera_dir.iterdir()) == []
        assert list(files.cache_root.iterdir()) == []


# ── App private ───────────────────────────────────────────────────────────
class TestAppPrivateStrategy:
    @pytest.mark.asyncio
    async def test_writes_under_container(self, tmp_path, files, library, make_context):
        strategy = AppPrivateStrategy(str(tmp_path / "private"), "LabeledPhotos", files, library)

        outcome = await strategy.save(make_context())

        assert outcome.backend == BackendKind.APP_PRIVATE
        assert (tmp_path / "private" / "LabeledPhotos" / "my_dog" / CANONICAL).is_file()
        assert outcome.destination_description == "app storage folder 'LabeledPhotos/my_dog'"

    @pytest.mark.asyncio
    async def test_mirrors_into_gallery(self, tmp_path, files, library, make_context):
        strategy = AppPrivateStrategy(str(tmp_path / "private"), "LabeledPhotos", files, library)
        await strategy.save(make_context())
        assert (library.albums_dir / "my_dog" / CANONICAL).is_file()

    @pytest.mark.asyncio
    async def test_mirror_failure_still_succeeds(self, tmp_path, files, library, make_context):
        strategy = AppPrivateStrategy(str(tmp_path / "private"), "LabeledPhotos", files, library)
        with patch.object(library, "create_asset", AsyncMock(side_effect=OSError("media store busy"))):
            outcome = await strategy.save(make_context())

        assert outcome.success
        assert (tmp_path / "private" / "LabeledPhotos" / "my_dog" / CANONICAL).is_file()

    @pytest.mark.asyncio
    async def test_mirror_album_failure_removes_asset(self, tmp_path, files, library, make_context):
        strategy = AppPrivateStrategy(str(tmp_path / "private"), "LabeledPhotos", files, library)
        with patch.object(library, "create_album", AsyncMock(side_effect=OSError("media store busy"))):
            outcome = await strategy.save(make_context())

        assert outcome.success
        assert (tmp_path / "private" / "LabeledPhotos" / "my_dog" / CANONICAL).is_file()
        assert list(library.camera_dir.iterdir()) == []
        assert (await library.get_assets(first=10)).assets == []

    @pytest.mark.asyncio
    async def test_unwritable_root_fails(self, tmp_path, files, library, make_context):
        blocker = tmp_path / "private"
        blocker.write_text("not a directory")
        strategy = AppPrivateStrategy(str(blocker), "LabeledPhotos", files, library)

        with pytest.raises(StrategyFailureError) as exc_info:
            await strategy.save(make_context())
        assert exc_info.value.backend == BackendKind.APP_PRIVATE


# ── Root folder ───────────────────────────────────────────────────────────
class TestRootFolderPath:
    @pytest.mark.asyncio
    async def test_writes_into_label_folder(self, root_dir, files, documents, make_context, sample_image_bytes):
        ref = DirectoryReference(handle=str(root_dir), display_name="Sorted")

        outcome = await RootFolderStrategy(files, documents).save(make_context(root_folder=ref))

        assert outcome.backend == BackendKind.ROOT_FOLDER
        assert outcome.destination_description == "folder 'Sorted/my_dog'"
        assert (root_dir / "my_dog" / CANONICAL).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_reuses_existing_label_folder(self, root_dir, files, documents, make_context):
        (root_dir / "my_dog").mkdir()
        (root_dir / "my_dog" / CANONICAL).write_bytes(b"older photo")
        ref = DirectoryReference(handle=root_dir.as_uri(), display_name="Sorted")

        outcome = await RootFolderStrategy(files, documents).save(make_context(root_folder=ref))

        assert outcome.file_name == "device_2024-01-01_093015.jpg"
        assert (root_dir / "my_dog" / CANONICAL).read_bytes() == b"older photo"

    @pytest.mark.asyncio
    async def test_no_root_folder(self, files, documents, make_context):
        with pytest.raises(StrategyFailureError, match="No root folder"):
            await RootFolderStrategy(files, documents).save(make_context())

    @pytest.mark.asyncio
    async def test_os_error_is_wrapped(self, root_dir, files, documents, make_context):
        (root_dir / "my_dog").write_text("a file where the folder should be")
        ref = DirectoryReference(handle=str(root_dir), display_name="Sorted")

        with pytest.raises(StrategyFailureError) as exc_info:
            await RootFolderStrategy(files, documents).save(make_context(root_folder=ref))

        error = exc_info.value
        assert error.destination == "folder 'Sorted/my_dog'"
        assert error.context["error_type"] in {"FileExistsError", "NotADirectoryError"}


class TestRootFolderContent:
    @pytest.fixture(autouse=True)
    def _tree(self, documents):
        self.tree = documents.tree_uri("Pictures")
        self.ref = DirectoryReference(handle=self.tree, display_name="Pictures")

    @pytest.mark.asyncio
    async def test_writes_into_label_subdirectory(self, files, documents, make_context, sample_image_bytes):
        await documents.take_persistable_permission(self.tree)

        outcome = await RootFolderStrategy(files, documents).save(make_context(root_folder=self.ref))

        assert outcome.file_name == CANONICAL
        assert outcome.destination_description == "folder 'Pictures/my_dog'"
        written = documents.root / "Pictures" / "my_dog" / CANONICAL
        assert written.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_reuses_label_subdirectory(self, files, documents, make_context):
        await documents.take_persistable_permission(self.tree)
        strategy = RootFolderStrategy(files, documents)

        await strategy.save(make_context(root_folder=self.ref))
        second = await strategy.save(make_context(root_folder=self.ref))

        assert second.file_name == "device_2024-01-01_093015.jpg"
        assert sorted(p.name for p in (documents.root / "Pictures").iterdir()) == ["my_dog"]

    @pytest.mark.asyncio
    async def test_subdirectory_failure_writes_under_root(self, files, documents, make_context):
        await documents.take_persistable_permission(self.tree)
        strategy = RootFolderStrategy(files, documents)

        with patch.object(documents, "make_directory", AsyncMock(side_effect=OSError("quota"))):
            outcome = await strategy.save(make_context(root_folder=self.ref))

        assert outcome.success
        assert outcome.file_name == "my_dog_device_2024-01-01.jpg"
        assert outcome.destination_description == "folder 'Pictures'"
        assert (documents.root / "Pictures" / "my_dog_device_2024-01-01.jpg").is_file()

    @pytest.mark.asyncio
    async def test_revoked_grant_fails(self, files, documents, make_context):
        with pytest.raises(StrategyFailureError) as exc_info:
            await RootFolderStrategy(files, documents).save(make_context(root_folder=self.ref))
        assert exc_info.value.context["error_type"] == "PermissionError"

    @pytest.mark.asyncio
    async def test_failed_write_removes_empty_file(self, files, documents, make_context):
        await documents.take_persistable_permission(self.tree)
        with patch.object(documents, "write_as_string", AsyncMock(side_effect=OSError("io"))):
            with pytest.raises(StrategyFailureError):
                await RootFolderStrategy(files, documents).save(make_context(root_folder=self.ref))
        assert list((documents.root / "Pictures" / "my_dog").iterdir()) == []


# ── Custom location ───────────────────────────────────────────────────────
class TestCustomLocationStrategy:
    @pytest.mark.asyncio
    async def test_picked_directory(self, tmp_path, files, documents, make_context):
        target = tmp_path / "Picked"
        target.mkdir()
        picker = PresetFolderPicker(PickedLocation(uri=target.as_uri(), name="My Picks"))

        outcome = await CustomLocationStrategy(ANDROID, files, documents).save(make_context(picker=picker))

        assert outcome.backend == BackendKind.CUSTOM_LOCATION
        assert outcome.destination_description == "folder 'My Picks'"
        assert (target / CANONICAL).is_file()

    @pytest.mark.asyncio
    async def test_picked_document_uses_parent(self, tmp_path, files, documents, make_context):
        target = tmp_path / "Picked"
        target.mkdir()
        picked = PickedLocation(uri=str(target / "existing.jpg"), is_directory=False)

        outcome = await CustomLocationStrategy(ANDROID, files, documents).save(
            make_context(picker=PresetFolderPicker(picked))
        )

        assert outcome.destination_description == "folder 'Picked'"
        assert (target / CANONICAL).is_file()

    @pytest.mark.asyncio
    async def test_picked_content_document_uses_parent_tree(self, files, documents, make_context):
        await documents.take_persistable_permission(documents.tree_uri("Pictures"))
        picked = PickedLocation(uri=documents.document_uri("Pictures/old.jpg"), is_directory=False)

        outcome = await CustomLocationStrategy(ANDROID, files, documents).save(
            make_context(picker=PresetFolderPicker(picked))
        )

        assert outcome.destination_description == "folder 'Pictures'"
        assert (documents.root / "Pictures" / CANONICAL).is_file()

    @pytest.mark.asyncio
    async def test_dismissed_picker(self, files, documents, make_context):
        with pytest.raises(StrategyFailureError, match="No folder was picked"):
            await CustomLocationStrategy(ANDROID, files, documents).save(
                make_context(picker=PresetFolderPicker(None))
            )

    @pytest.mark.asyncio
    async def test_share_sheet_without_picker(self, tmp_path, files, documents, make_context):
        share_sheet = ExportShareSheet(export_root=str(tmp_path / "exports"), files=files)

        outcome = await CustomLocationStrategy(IOS, files, documents).save(
            make_context(share_sheet=share_sheet)
        )

        assert outcome.destination_description == f"shared as /api/exports/{CANONICAL}"
        assert outcome.file_name == CANONICAL
        assert (tmp_path / "exports" / CANONICAL).is_file()

    @pytest.mark.asyncio
    async def test_dismissed_share(self, files, documents, make_context):
        share_sheet = MagicMock()
        share_sheet.share = AsyncMock(return_value=None)

        with pytest.raises(StrategyFailureError, match="Sharing was cancelled"):
            await CustomLocationStrategy(IOS, files, documents).save(make_context(share_sheet=share_sheet))

    @pytest.mark.asyncio
    async def test_no_picker_no_share_sheet(self, files, documents, make_context):
        with pytest.raises(StrategyFailureError):
            await CustomLocationStrategy(IOS, files, documents).save(make_context())


class TestCloudUploadStrategy:
    @pytest.mark.asyncio
    async def test_always_unavailable(self, make_context):
        with pytest.raises(BackendUnavailableError, match="not available yet"):
            await CloudUploadStrategy().save(make_context())


class TestSaveContext:
    def test_album_name_prefers_hint(self, make_context):
        assert make_context().album_name == "my_dog"
        assert make_context(folder_name_hint="Best Pets!").album_name == "best_pets"
        assert make_context(label="!!!").sanitized_label == "untitled"

    def test_photo_path_is_path(self, make_context, photo_file):
        assert isinstance(make_context().photo_path, Path)
        assert make_context().photo_path == photo_file
