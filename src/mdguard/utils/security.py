#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Path security utilities for mdguard.

This module guards the filesystem boundary. Paths arrive from open dialogs,
drag-and-drop and markdown link clicks; they are checked here before any
filesystem collaborator touches them.

Functions
---------
- is_path_safe: Check a document path against the extension allowlist
- is_within_directory: Containment check for secondary resources
- resolve_document_resource: Resolve a resource next to a document, raising on escape
- redact_paths: Reduce absolute paths in a message to their basenames
- sanitize_error_message: Produce a user-safe message from an exception
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from mdguard.constants import DEFAULT_ALLOWED_EXTENSIONS, GENERIC_ERROR_MESSAGE
from mdguard.exceptions import MdGuardError, UnsafePathError

logger = logging.getLogger(__name__)

# Absolute POSIX directories ("/home/user/") and Windows drive directories ("C:\\Users\\")
_POSIX_DIR_PATTERN = re.compile(r"/[^\s'\"]+/")
_WINDOWS_DIR_PATTERN = re.compile(r"[A-Za-z]:\\[^\s'\"]*\\")


def get_extension(path: str | Path) -> str:
    """Return the lowercased extension of ``path`` including the dot.

    Examples
    --------
    >>> get_extension("notes/README.MD")
    '.md'
    >>> get_extension("Makefile")
    ''

    """
    return Path(path).suffix.lower()


def is_path_safe(path: str | Path, allowed_extensions: tuple[str, ...] | None = None) -> bool:
    """Validate that a file path is safe to open as a document.

    The path is resolved to an absolute path (normalizing any ``..``
    segments) and its extension is compared case-insensitively against the
    allowlist.

    Parameters
    ----------
    path : str or Path
        Path to validate
    allowed_extensions : tuple of str, optional
        Extensions (with leading dot, lowercase) that may be opened. Defaults
        to ``(".md", ".markdown")``.

    Returns
    -------
    bool
        True if the path has an allowed extension, False otherwise. Never
        raises; paths that cannot be resolved are rejected.

    Examples
    --------
    >>> is_path_safe("/a/b/c/doc.md")
    True
    >>> is_path_safe("report.MARKDOWN")
    True
    >>> is_path_safe("image.png")
    False

    """
    if allowed_extensions is None:
        allowed_extensions = DEFAULT_ALLOWED_EXTENSIONS

    try:
        if not isinstance(path, (str, os.PathLike)) or not str(path).strip():
            logger.warning("[SECURITY] Rejected empty or non-string path")
            return False
        if "\x00" in str(path):
            logger.warning("[SECURITY] Rejected path containing a NUL byte")
            return False

        resolved = Path(path).resolve()
        extension = resolved.suffix.lower()
    except (OSError, ValueError, RuntimeError) as e:
        logger.error(f"Path validation error: {e}")
        return False

    if extension not in allowed_extensions:
        logger.warning(f"[SECURITY] Rejected file with invalid extension: {extension or '(none)'}")
        return False

    return True


def is_within_directory(base: str | Path, candidate: str | Path) -> bool:
    """Check that ``candidate`` stays inside the ``base`` directory tree.

    ``candidate`` is resolved relative to ``base`` (absolute candidates are
    taken as-is), symlinks are followed, and the relative path from base to
    candidate is computed. The candidate is rejected when that relative path
    begins with a parent-directory segment or is itself absolute (different
    drive on Windows).

    Parameters
    ----------
    base : str or Path
        Directory that must contain the candidate
    candidate : str or Path
        Path to check, usually relative to ``base``

    Returns
    -------
    bool
        True if the candidate is ``base`` itself or lies beneath it

    Examples
    --------
    >>> is_within_directory("/docs", "images/figure.png")
    True
    >>> is_within_directory("/docs", "../../etc/passwd.md")
    False

    """
    try:
        if "\x00" in str(base) or "\x00" in str(candidate):
            return False
        base_path = Path(base).resolve()
        target = (base_path / candidate).resolve()
        relative = os.path.relpath(target, base_path)
    except (OSError, ValueError, RuntimeError) as e:
        # relpath raises ValueError across Windows drives
        logger.warning(f"[SECURITY] Containment check failed: {e}")
        return False

    if os.path.isabs(relative):
        return False

    first_part = Path(relative).parts[0] if Path(relative).parts else ""
    if first_part == os.pardir:
        logger.warning(f"[SECURITY] Rejected path escaping its base directory: {Path(candidate).name}")
        return False

    return True


def resolve_document_resource(document_path: str | Path, resource_path: str | Path) -> Path:
    """Resolve a resource (e.g. an image) referenced from a markdown document.

    Relative resource paths are resolved against the document's directory.
    The result must stay within that directory tree.

    Parameters
    ----------
    document_path : str or Path
        Path of the markdown document referencing the resource
    resource_path : str or Path
        Path of the resource as written in the document

    Returns
    -------
    Path
        Resolved absolute path of the resource

    Raises
    ------
    UnsafePathError
        If the resource would escape the document's directory

    """
    base_dir = Path(document_path).resolve().parent
    if not is_within_directory(base_dir, resource_path):
        raise UnsafePathError(
            "Resource path must stay within the document's directory",
            path=str(resource_path),
        )
    return (base_dir / resource_path).resolve()


def redact_paths(message: str) -> str:
    """Reduce absolute directory paths in ``message`` to ``.../basename`` form.

    Examples
    --------
    >>> redact_paths("ENOENT: no such file /home/alice/docs/notes.md")
    'ENOENT: no such file .../notes.md'

    """

    def _replace(match: re.Match[str]) -> str:
        name = os.path.basename(match.group(0).rstrip("/\\"))
        return f".../{name}/" if name else match.group(0)

    message = _POSIX_DIR_PATTERN.sub(_replace, message)
    message = _WINDOWS_DIR_PATTERN.sub(lambda m: ".../", message)
    # Collapse the parent directory left in front of the final component
    return re.sub(r"\.\.\./[^\s/'\"]+/(?=[^\s/'\"])", ".../", message)


def sanitize_error_message(error: BaseException, production: bool = True) -> str:
    """Produce a user-safe message for ``error``.

    In production builds unknown errors are reported generically so that no
    absolute paths or internal details leak; mdguard's own errors carry
    messages written for users and are passed through with paths redacted.
    Development builds report every message with paths redacted.

    Parameters
    ----------
    error : BaseException
        The error to describe
    production : bool, default True
        Whether this is a production build

    Returns
    -------
    str
        Message safe to show to the user

    """
    if production and not isinstance(error, MdGuardError):
        return GENERIC_ERROR_MESSAGE

    message = str(error) or type(error).__name__
    return redact_paths(message)


__all__ = [
    "get_extension",
    "is_path_safe",
    "is_within_directory",
    "resolve_document_resource",
    "redact_paths",
    "sanitize_error_message",
]
