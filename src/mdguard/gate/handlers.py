#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/handlers.py
"""Built-in editor commands that touch the filesystem or the OS.

These handlers sit behind the command gate and apply the boundary validators
to already schema-checked payloads:

- ``read-file``: path guard, size limit and byte content validation
- ``open-external-url``: URL guard, optional confirmation, then the opener
- ``read-image-file``: containment of the image in the document's directory
"""

from __future__ import annotations

import asyncio
import base64
import inspect
import logging
import webbrowser
from pathlib import Path
from typing import Any, Callable

from mdguard.exceptions import FileTooLargeError, HandlerError, UnsafePathError
from mdguard.gate.registry import CommandRegistry
from mdguard.gate.schemas import ReadFilePayload, ReadImageFilePayload
from mdguard.loader import read_document
from mdguard.options.security import GuardOptions
from mdguard.utils.network_security import validate_external_url
from mdguard.utils.security import is_path_safe, resolve_document_resource

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
}

UrlOpener = Callable[[str], Any]
UrlConfirm = Callable[[str], Any]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class BuiltinCommands:
    """Handlers for the built-in commands.

    Parameters
    ----------
    options : GuardOptions, optional
        Validation policy
    opener : callable, optional
        ``opener(url)`` hands a validated URL to the OS. Defaults to
        :func:`webbrowser.open`. May be a coroutine function.
    confirm : callable, optional
        ``confirm(url)`` asks the user before opening; a falsy result
        cancels. May be a coroutine function.

    """

    def __init__(
        self,
        options: GuardOptions | None = None,
        opener: UrlOpener | None = None,
        confirm: UrlConfirm | None = None,
    ):
        """Initialize the handlers."""
        self.options = options or GuardOptions()
        self.opener = opener or webbrowser.open
        self.confirm = confirm

    async def read_file(self, payload: ReadFilePayload, context: Any) -> dict[str, str]:
        """Read a markdown document for the renderer."""
        document = await asyncio.to_thread(read_document, payload.file_path, self.options)
        return {"filePath": str(document.file_path), "content": document.content, "name": document.name}

    async def open_external_url(self, url: str, context: Any) -> dict[str, Any]:
        """Open a link from a document in the default browser."""
        sanitized = validate_external_url(url, self.options.url_security).unwrap()

        if self.confirm is not None and not await _resolve(self.confirm(sanitized)):
            logger.info("External URL open cancelled by user")
            return {"opened": False, "url": sanitized}

        await _resolve(self.opener(sanitized))
        logger.info(f"Opened external URL on host {sanitized.split('/')[2]}")
        return {"opened": True, "url": sanitized}

    async def read_image_file(self, payload: ReadImageFilePayload, context: Any) -> dict[str, str]:
        """Read an image referenced by a document, as base64."""
        return await asyncio.to_thread(self._read_image, payload.markdown_file_path, payload.image_path)

    def _read_image(self, markdown_file_path: str, image_path: str) -> dict[str, str]:
        if not is_path_safe(markdown_file_path, self.options.path_security.allowed_extensions):
            raise UnsafePathError("Images can only be read for Markdown documents", path=markdown_file_path)

        resolved = resolve_document_resource(markdown_file_path, image_path)

        mime_type = IMAGE_MIME_TYPES.get(resolved.suffix.lower())
        if mime_type is None:
            raise UnsafePathError(f"Unsupported image type: {resolved.suffix or '(none)'}", path=image_path)

        if not resolved.is_file():
            raise HandlerError(f"Image not found: {Path(image_path).name}", handler_name="read-image-file")

        limit = self.options.file_integrity.max_file_size
        size = resolved.stat().st_size
        if size > limit:
            raise FileTooLargeError("Image exceeds the maximum file size", size=size, limit=limit)

        data = base64.b64encode(resolved.read_bytes()).decode("ascii")
        return {"data": data, "mimeType": mime_type}


def register_builtin_commands(
    registry: CommandRegistry,
    options: GuardOptions | None = None,
    *,
    opener: UrlOpener | None = None,
    confirm: UrlConfirm | None = None,
) -> BuiltinCommands:
    """Register the built-in handlers on ``registry``.

    Parameters
    ----------
    registry : CommandRegistry
        Registry to add the handlers to
    options : GuardOptions, optional
        Validation policy. Defaults to the registry gate's options.
    opener : callable, optional
        URL opener for ``open-external-url``
    confirm : callable, optional
        Confirmation prompt for ``open-external-url``

    Returns
    -------
    BuiltinCommands
        The handler object, for callers that want to invoke handlers directly

    """
    commands = BuiltinCommands(options or registry.gate.options, opener=opener, confirm=confirm)
    registry.register("read-file", commands.read_file)
    registry.register("open-external-url", commands.open_external_url)
    registry.register("read-image-file", commands.read_image_file)
    return commands


__all__ = ["BuiltinCommands", "IMAGE_MIME_TYPES", "register_builtin_commands"]
