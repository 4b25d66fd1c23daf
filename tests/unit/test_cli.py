#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the mdguard command-line interface."""

import io
import json
import logging
import os

import pytest

from mdguard import __version__
from mdguard.cli import EXIT_REJECTED, EXIT_SUCCESS, EXIT_USAGE_ERROR, create_parser, main


@pytest.fixture(autouse=True)
def clean_environment(tmp_path, monkeypatch, restore_root_logger):
    """Run each CLI test without ambient configuration."""
    for key in list(os.environ):
        if key.startswith("MDGUARD_"):
            monkeypatch.delenv(key)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.mark.cli
@pytest.mark.unit
class TestParser:
    """Test argument parsing."""

    def test_subcommands(self):
        """Test that each subcommand parses."""
        parser = create_parser()
        assert parser.parse_args(["check-file", "a.md"]).paths == ["a.md"]
        assert parser.parse_args(["check-url", "https://x"]).urls == ["https://x"]
        assert parser.parse_args(["sanitize-html"]).input == "-"
        assert parser.parse_args(["show-config"]).command == "show-config"

    def test_version(self, capsys):
        """Test --version."""
        assert main(["--version"]) == EXIT_SUCCESS
        assert __version__ in capsys.readouterr().out

    def test_missing_command(self, capsys):
        """Test that a command is required."""
        assert main([]) == EXIT_USAGE_ERROR

    def test_unknown_option(self, capsys):
        """Test that unknown options are usage errors."""
        assert main(["check-file", "--bogus", "a.md"]) == EXIT_USAGE_ERROR


@pytest.mark.cli
@pytest.mark.unit
class TestCheckFile:
    """Test the check-file command."""

    def test_valid(self, markdown_file, capsys):
        """Test a passing document."""
        assert main(["check-file", str(markdown_file)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert out.startswith(f"OK {markdown_file}: ")
        assert "characters" in out

    def test_rejected(self, tmp_path, markdown_file, capsys):
        """Test that any rejection sets the exit code."""
        binary = tmp_path / "binary.md"
        binary.write_bytes(b"\x00\x01")
        assert main(["check-file", str(markdown_file), str(binary)]) == EXIT_REJECTED
        out = capsys.readouterr().out
        assert f"REJECTED {binary}: File appears to be binary" in out

    def test_json(self, tmp_path, capsys):
        """Test JSON output."""
        path = tmp_path / "notes.txt"
        path.write_text("x")
        assert main(["check-file", "--json", str(path)]) == EXIT_REJECTED
        results = json.loads(capsys.readouterr().out)
        assert results == [
            {"path": str(path), "valid": False, "detail": "Only Markdown files (.md, .markdown) can be opened."}
        ]

    def test_rich_table(self, markdown_file, capsys):
        """Test table output."""
        assert main(["--rich", "check-file", str(markdown_file)]) == EXIT_SUCCESS
        assert "Document Checks" in capsys.readouterr().out

    def test_config_applies(self, tmp_path, clean_environment, capsys):
        """Test that a discovered configuration is used."""
        (clean_environment / ".mdguard.toml").write_text('[path_security]\nallowed_extensions = [".txt"]\n')
        path = tmp_path / "notes.txt"
        path.write_text("plain")
        assert main(["check-file", str(path)]) == EXIT_SUCCESS


@pytest.mark.cli
@pytest.mark.unit
class TestCheckUrl:
    """Test the check-url command."""

    def test_valid_and_rejected(self, capsys):
        """Test mixed results."""
        assert main(["check-url", "HTTPS://Example.com", "javascript:alert(1)"]) == EXIT_REJECTED
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "OK HTTPS://Example.com: https://example.com/"
        assert lines[1] == 'REJECTED javascript:alert(1): Protocol "javascript:" is not allowed for security reasons'

    def test_json(self, capsys):
        """Test JSON output."""
        assert main(["check-url", "--json", "https://example.com"]) == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out)[0]["detail"] == "https://example.com/"


@pytest.mark.cli
@pytest.mark.unit
class TestSanitize:
    """Test the sanitize commands."""

    def test_sanitize_html_file(self, tmp_path, capsys):
        """Test sanitizing an HTML file."""
        path = tmp_path / "preview.html"
        path.write_text('<p onclick="x()">Hi</p><script>alert(1)</script>')
        assert main(["sanitize-html", str(path)]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "<p>Hi</p>"

    def test_sanitize_html_stdin(self, monkeypatch, capsys):
        """Test sanitizing from stdin."""
        monkeypatch.setattr("sys.stdin", io.StringIO('<a href="javascript:x">a</a>'))
        assert main(["sanitize-html", "-"]) == EXIT_SUCCESS
        assert capsys.readouterr().out == '<a rel="noopener noreferrer">a</a>'

    def test_sanitize_text(self, monkeypatch, capsys):
        """Test sanitizing text from stdin."""
        monkeypatch.setattr("sys.stdin", io.StringIO("a\x00b\tc"))
        assert main(["sanitize-text"]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "ab\tc"

    def test_missing_input(self, tmp_path, capsys):
        """Test that an unreadable input is a usage error."""
        assert main(["sanitize-html", str(tmp_path / "nope.html")]) == EXIT_USAGE_ERROR
        assert "cannot read input" in capsys.readouterr().err

    def test_undecodable_input(self, tmp_path, capsys):
        """Test that non-UTF-8 input is a usage error."""
        path = tmp_path / "latin1.html"
        path.write_bytes(b"caf\xe9")
        assert main(["sanitize-text", str(path)]) == EXIT_USAGE_ERROR


@pytest.mark.cli
@pytest.mark.unit
class TestShowConfig:
    """Test the show-config command."""

    def test_defaults(self, capsys):
        """Test printing the default configuration."""
        assert main(["show-config"]) == EXIT_SUCCESS
        config = json.loads(capsys.readouterr().out)
        assert config["production"] is True
        assert config["rate_limit"]["max_calls"] == 100
        assert config["path_security"]["allowed_extensions"] == [".md", ".markdown"]
        assert "script" in config["sanitization"]["dangerous_elements"]

    def test_environment_override(self, monkeypatch, capsys):
        """Test that environment overrides are shown."""
        monkeypatch.setenv("MDGUARD_RATE_LIMIT_MAX_CALLS", "12")
        assert main(["show-config"]) == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out)["rate_limit"]["max_calls"] == 12

    def test_bad_config(self, tmp_path, capsys):
        """Test that configuration errors are usage errors."""
        path = tmp_path / "bad.toml"
        path.write_text("[rate_limit]\nmax_calls = 0\n")
        assert main(["--config", str(path), "show-config"]) == EXIT_USAGE_ERROR
        assert "Configuration error" in capsys.readouterr().err

    def test_missing_config(self, tmp_path, capsys):
        """Test that a missing config file is a usage error."""
        assert main(["--config", str(tmp_path / "none.toml"), "show-config"]) == EXIT_USAGE_ERROR


@pytest.mark.cli
@pytest.mark.unit
class TestLoggingOptions:
    """Test logging flags."""

    def test_security_log(self, tmp_path, capsys):
        """Test that rejections are written to the audit file."""
        audit = tmp_path / "audit.log"
        main(["--security-log", str(audit), "check-url", "file:///etc/passwd"])
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "[SECURITY]" in audit.read_text()
