#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for secure document loading."""

import pytest

from mdguard.constants import BINARY_CONTENT_MESSAGE, INVALID_UTF8_MESSAGE
from mdguard.exceptions import BinaryContentError, EncodingError, FileTooLargeError, MdGuardError, UnsafePathError
from mdguard.loader import READ_FAILED_MESSAGE, load_document, read_document
from mdguard.options import FileIntegrityOptions, GuardOptions, PathSecurityOptions


@pytest.mark.unit
@pytest.mark.security
class TestLoadDocument:
    """Test the ordered checks of the file-open flow."""

    def test_valid_document(self, markdown_file):
        """Test that a valid document is returned."""
        result = load_document(markdown_file)
        assert result.valid
        assert result.content.startswith("# Notes")

    def test_extension_checked_first(self, tmp_path):
        """Test that the extension is checked before the file is touched."""
        result = load_document(tmp_path / "missing.exe")
        assert result.error == "Only Markdown files (.md, .markdown) can be opened."
        assert result.error_type is UnsafePathError

    def test_extension_message_follows_options(self, tmp_path):
        """Test that the message lists the configured extensions."""
        options = GuardOptions(path_security=PathSecurityOptions(allowed_extensions=(".md",)))
        assert load_document(tmp_path / "a.txt", options).error == "Only Markdown files (.md) can be opened."

    def test_too_large(self, tmp_path):
        """Test the size limit in bytes."""
        path = tmp_path / "big.md"
        path.write_bytes(b"a" * 101)
        options = GuardOptions(file_integrity=FileIntegrityOptions(max_file_size=100))
        result = load_document(path, options)
        assert result.error == "The file exceeds the maximum size of 100 bytes."
        assert result.error_type is FileTooLargeError

    def test_size_message_in_megabytes(self, tmp_path):
        """Test that large limits are reported in MB."""
        path = tmp_path / "big.md"
        path.write_bytes(b"a" * (2 * 1024 * 1024 + 1))
        options = GuardOptions(file_integrity=FileIntegrityOptions(max_file_size=2 * 1024 * 1024))
        assert load_document(path, options).error == "The file exceeds the maximum size of 2MB."

    def test_invalid_utf8(self, tmp_path):
        """Test that invalid UTF-8 is rejected."""
        path = tmp_path / "latin1.md"
        path.write_bytes("café".encode("latin-1"))
        result = load_document(path)
        assert result.error == INVALID_UTF8_MESSAGE
        assert result.error_type is EncodingError

    def test_binary(self, tmp_path):
        """Test that binary content is rejected."""
        path = tmp_path / "image.md"
        path.write_bytes(b"GIF89a\x00\x01\x00\x01")
        result = load_document(path)
        assert result.error == BINARY_CONTENT_MESSAGE
        assert result.error_type is BinaryContentError

    def test_missing_file(self, tmp_path):
        """Test that read failures report a generic message."""
        result = load_document(tmp_path / "gone.md")
        assert result.error == READ_FAILED_MESSAGE
        assert result.error_type is MdGuardError

    def test_directory(self, tmp_path):
        """Test that a directory named like a document is not read."""
        (tmp_path / "folder.md").mkdir()
        assert not load_document(tmp_path / "folder.md").valid

    def test_read_error_logged_without_path(self, tmp_path, caplog):
        """Test that the read failure log does not contain the directory."""
        with caplog.at_level("ERROR"):
            load_document(tmp_path / "gone.md")
        assert str(tmp_path) not in caplog.text

    def test_bom_stripped(self, tmp_path):
        """Test that a UTF-8 BOM is removed."""
        path = tmp_path / "bom.md"
        path.write_bytes(b"\xef\xbb\xbf# Title")
        assert load_document(path).content == "# Title"


@pytest.mark.unit
class TestReadDocument:
    """Test the raising variant."""

    def test_returns_loaded_document(self, markdown_file):
        """Test the loaded document fields."""
        document = read_document(str(markdown_file))
        assert document.name == "notes.md"
        assert document.file_path == markdown_file.resolve()
        assert document.content == "# Notes\n\nSome *markdown* text.\n"

    def test_raises_rejection(self, tmp_path):
        """Test that rejections are raised as mdguard errors."""
        path = tmp_path / "bin.md"
        path.write_bytes(b"\x00\x00")
        with pytest.raises(BinaryContentError):
            read_document(path)

    def test_raises_unsafe_path(self, tmp_path):
        """Test that a bad extension raises UnsafePathError."""
        with pytest.raises(UnsafePathError):
            read_document(tmp_path / "x.sh")
