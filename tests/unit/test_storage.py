"""Unit tests for local file storage."""
import pytest

from homecare.services.storage import LocalStorage, sanitize_filename

pytestmark = pytest.mark.unit


class TestSanitizeFilename:
    def test_unsafe_characters_replaced(self):
        assert sanitize_filename("my license (2024).pdf") == "my_license__2024_.pdf"

    def test_directories_stripped(self):
        assert sanitize_filename("../../etc/passwd") == "passwd"

    def test_empty_name(self):
        assert sanitize_filename("") == "file"


class TestLocalStorage:
    def test_save_exists_delete(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        key = storage.save("providers/u1/license/1_doc.pdf", b"%PDF")

        assert key == "providers/u1/license/1_doc.pdf"
        assert storage.exists(key)
        assert (tmp_path / key).read_bytes() == b"%PDF"

        assert storage.delete(key) is True
        assert not storage.exists(key)
        assert storage.delete(key) is False

    def test_paths_cannot_escape_root(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "root"))
        with pytest.raises(ValueError):
            storage.save("../outside.txt", b"x")
        with pytest.raises(ValueError):
            storage.exists("a/../../outside.txt")
