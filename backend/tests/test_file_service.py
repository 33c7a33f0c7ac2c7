"""
PhotoFiler Backend: File Service Unit Tests
=============================================

What:  Tests for photo reference validation and the shared copy helpers.
How:   Real files in pytest's tmp_path; tenacity retries exercised by
       patching read_bytes with transient failures.

Test Strategy:
    ✅ Allowed extensions (.jpg, .jpeg, .png), case-insensitive
    ✅ Rejected extensions and missing photos
    ✅ file:// URIs and plain paths; other schemes rejected
    ✅ Collision handling never overwrites
    ✅ Atomic writes leave no temp files
    ✅ Transient I/O errors retried, permanent ones not
"""

import base64
from unittest.mock import AsyncMock, patch

import pytest

from photofiler.exceptions import InvalidInputError
from photofiler.services.file_service import FileService, path_from_uri


class TestExtensionValidation:
    def setup_method(self):
        self.service = FileService(cache_root="/tmp/photofiler-test-cache")

    @pytest.mark.parametrize("name", ["photo.jpg", "photo.jpeg", "photo.png", "photo.JPG", "photo.Jpeg"])
    def test_allowed(self, name):
        assert self.service.validate_extension(name) in {".jpg", ".jpeg", ".png"}

    @pytest.mark.parametrize("name", ["animation.gif", "document.pdf", "noextension", "malware.exe"])
    def test_rejected(self, name):
        with pytest.raises(InvalidInputError, match="not supported"):
            self.service.validate_extension(name)


class TestPathFromUri:
    def test_file_uri(self):
        assert str(path_from_uri("file:///tmp/My%20Photos/a.jpg")) == "/tmp/My Photos/a.jpg"

    def test_plain_path(self):
        assert str(path_from_uri("/tmp/a.jpg")) == "/tmp/a.jpg"

    def test_other_scheme_rejected(self):
        with pytest.raises(InvalidInputError):
            path_from_uri("https://example.com/a.jpg")


class TestResolvePhoto:
    def setup_method(self):
        self.service = FileService(cache_root="/tmp/photofiler-test-cache")

    @pytest.mark.asyncio
    async def test_existing_photo(self, photo_file):
        assert await self.service.resolve_photo(str(photo_file)) == photo_file
        assert await self.service.resolve_photo(photo_file.as_uri()) == photo_file

    @pytest.mark.asyncio
    @pytest.mark.parametrize("uri", ["", "   "])
    async def test_empty_reference(self, uri):
        with pytest.raises(InvalidInputError) as exc_info:
            await self.service.resolve_photo(uri)
        assert exc_info.value.field == "photo_uri"

    @pytest.mark.asyncio
    async def test_missing_photo(self, tmp_path):
        with pytest.raises(InvalidInputError, match="could not be read"):
            await self.service.resolve_photo(str(tmp_path / "gone.jpg"))

    @pytest.mark.asyncio
    async def test_directory_is_not_a_photo(self, tmp_path):
        folder = tmp_path / "folder.jpg"
        folder.mkdir()
        with pytest.raises(InvalidInputError):
            await self.service.resolve_photo(str(folder))

    @pytest.mark.asyncio
    async def test_unsupported_type(self, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"\x00")
        with pytest.raises(InvalidInputError, match="not supported"):
            await self.service.resolve_photo(str(video))


class TestCopying:
    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = FileService(cache_root=str(tmp_path / "cache"))

    @pytest.mark.asyncio
    async def test_copy_into_creates_directory(self, photo_file, tmp_path, sample_image_bytes):
        target = tmp_path / "out" / "nested"
        written = await self.service.copy_into(photo_file, target, ["a.jpg"])
        assert written == target / "a.jpg"
        assert written.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_collision_uses_next_candidate(self, photo_file, tmp_path):
        target = tmp_path / "out"
        target.mkdir()
        (target / "a.jpg").write_bytes(b"existing")

        written = await self.service.copy_into(photo_file, target, ["a.jpg", "a_1.jpg"])

        assert written.name == "a_1.jpg"
        assert (target / "a.jpg").read_bytes() == b"existing"

    @pytest.mark.asyncio
    async def test_all_candidates_taken(self, photo_file, tmp_path):
        target = tmp_path / "out"
        target.mkdir()
        (target / "a.jpg").write_bytes(b"existing")
        with pytest.raises(FileExistsError):
            await self.service.copy_into(photo_file, target, ["a.jpg"])

    @pytest.mark.asyncio
    async def test_write_atomic_leaves_no_temp_files(self, tmp_path):
        await self.service.write_atomic(tmp_path / "photo.jpg", b"data")
        assert [p.name for p in tmp_path.iterdir()] == ["photo.jpg"]

    @pytest.mark.asyncio
    async def test_failed_write_removes_temp_file(self, tmp_path):
        with patch("photofiler.services.file_service.aiofiles.os.replace",
                   AsyncMock(side_effect=OSError("disk full"))):
            with pytest.raises(OSError):
                await self.service.write_atomic(tmp_path / "photo.jpg", b"data")
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_make_temp_copy_lives_in_cache(self, photo_file, tmp_path):
        staged = await self.service.make_temp_copy(photo_file)
        assert staged.parent == (tmp_path / "cache").resolve()
        assert staged.suffix == ".jpg"
        await self.service.cleanup_file(staged)
        assert not staged.exists()

    @pytest.mark.asyncio
    async def test_cleanup_missing_file_is_quiet(self, tmp_path):
        await self.service.cleanup_file(tmp_path / "never-existed.jpg")

    @pytest.mark.asyncio
    async def test_read_base64(self, photo_file, sample_image_bytes):
        encoded = await self.service.read_base64(photo_file)
        assert base64.b64decode(encoded) == sample_image_bytes


class TestCopyRetry:
    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = FileService(cache_root=str(tmp_path / "cache"))

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, photo_file, tmp_path, sample_image_bytes):
        read = AsyncMock(side_effect=[BlockingIOError("busy"), sample_image_bytes])
        with patch.object(self.service, "read_bytes", read):
            written = await self.service.copy_file(photo_file, tmp_path / "copy.jpg")
        assert read.await_count == 2
        assert written.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_permanent_error_is_not_retried(self, photo_file, tmp_path):
        read = AsyncMock(side_effect=PermissionError("denied"))
        with patch.object(self.service, "read_bytes", read):
            with pytest.raises(PermissionError):
                await self.service.copy_file(photo_file, tmp_path / "copy.jpg")
        assert read.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, photo_file, tmp_path):
        read = AsyncMock(side_effect=BlockingIOError("busy"))
        with patch.object(self.service, "read_bytes", read):
            with pytest.raises(BlockingIOError):
                await self.service.copy_file(photo_file, tmp_path / "copy.jpg")
        assert read.await_count == 3
