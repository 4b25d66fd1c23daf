#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/schemas.py
"""Payload schemas for every allowlisted command.

Each command the renderer may send is bound to one pydantic model. Payloads
are validated strictly (no type coercion) before a handler runs; field names
on the wire are camelCase, as the renderer sends them.

String fields that carry document content are limited to
``GuardOptions.max_content_size`` characters, passed in through the
validation context by the gate.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Annotated, Any, Mapping

from pydantic import AfterValidator, BaseModel, ConfigDict, RootModel, ValidationInfo
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from mdguard.constants import DEFAULT_MAX_CONTENT_SIZE
from mdguard.exceptions import SchemaError


def _non_empty(message: str) -> AfterValidator:
    def check(value: str) -> str:
        if not value:
            raise PydanticCustomError("string_empty", message)
        return value

    return AfterValidator(check)


def _limit_content_size(value: str, info: ValidationInfo) -> str:
    context = info.context or {}
    limit = context.get("max_content_size", DEFAULT_MAX_CONTENT_SIZE)
    if len(value) > limit:
        raise PydanticCustomError("content_too_large", "Content too large")
    return value


ContentStr = Annotated[str, AfterValidator(_limit_content_size)]
FilenameStr = Annotated[str, _non_empty("Filename cannot be empty")]
FilePathStr = Annotated[str, _non_empty("File path cannot be empty")]
ImagePathStr = Annotated[str, _non_empty("Image path cannot be empty")]
MarkdownPathStr = Annotated[str, _non_empty("Markdown file path cannot be empty")]
ImageDataStr = Annotated[str, _non_empty("Image data cannot be empty"), AfterValidator(_limit_content_size)]
UrlStr = Annotated[str, _non_empty("URL cannot be empty")]


class CommandPayload(BaseModel):
    """Base class for object-shaped command payloads."""

    model_config = ConfigDict(strict=True, frozen=True, alias_generator=to_camel)


class SaveFilePayload(CommandPayload):
    """Payload for ``save-file``. ``file_path`` is None for unsaved documents."""

    content: ContentStr
    filename: FilenameStr
    file_path: str | None


class ReadFilePayload(CommandPayload):
    """Payload for ``read-file``."""

    file_path: FilePathStr


class ExportPdfPayload(CommandPayload):
    """Payload for ``export-pdf``."""

    content: ContentStr
    filename: FilenameStr


class CreateWindowForTabPayload(CommandPayload):
    """Payload for ``create-window-for-tab`` (a tab dragged out into a new window)."""

    file_path: str | None
    content: ContentStr


class ShowUnsavedDialogPayload(CommandPayload):
    """Payload for ``show-unsaved-dialog``."""

    filename: FilenameStr


class RevealInFinderPayload(CommandPayload):
    """Payload for ``reveal-in-finder``."""

    file_path: FilePathStr


class ReadImageFilePayload(CommandPayload):
    """Payload for ``read-image-file``. ``image_path`` is relative to the document."""

    image_path: ImagePathStr
    markdown_file_path: MarkdownPathStr


class CopyImageToDocumentPayload(CommandPayload):
    """Payload for ``copy-image-to-document``."""

    image_path: ImagePathStr
    markdown_file_path: MarkdownPathStr


class SaveImageFromDataPayload(CommandPayload):
    """Payload for ``save-image-from-data`` (pasted image as base64)."""

    image_data: ImageDataStr
    markdown_file_path: MarkdownPathStr


class OpenExternalUrlPayload(RootModel[UrlStr]):
    """Payload for ``open-external-url``: the URL as a bare string.

    Only emptiness is checked here; the URL itself goes through
    :func:`mdguard.utils.network_security.validate_external_url`.
    """

    model_config = ConfigDict(strict=True, frozen=True)


SCHEMA_REGISTRY: Mapping[str, type[BaseModel]] = MappingProxyType(
    {
        "save-file": SaveFilePayload,
        "read-file": ReadFilePayload,
        "export-pdf": ExportPdfPayload,
        "create-window-for-tab": CreateWindowForTabPayload,
        "show-unsaved-dialog": ShowUnsavedDialogPayload,
        "reveal-in-finder": RevealInFinderPayload,
        "read-image-file": ReadImageFilePayload,
        "copy-image-to-document": CopyImageToDocumentPayload,
        "save-image-from-data": SaveImageFromDataPayload,
        "open-external-url": OpenExternalUrlPayload,
    }
)


def format_validation_error(error: PydanticValidationError) -> str:
    """Summarize a pydantic validation error on one line.

    Examples
    --------
    >>> try:
    ...     ReadFilePayload.model_validate({"filePath": ""})
    ... except PydanticValidationError as e:
    ...     print(format_validation_error(e))
    Validation failed: filePath: File path cannot be empty

    """
    issues = []
    for issue in error.errors(include_url=False):
        location = ".".join(str(part) for part in issue["loc"])
        issues.append(f"{location}: {issue['msg']}" if location else issue["msg"])
    return f"Validation failed: {'; '.join(issues)}"


def validate_payload(schema: type[BaseModel], payload: Any, max_content_size: int | None = None) -> Any:
    """Validate ``payload`` against ``schema``.

    Parameters
    ----------
    schema : type of BaseModel
        Payload model. Root models are unwrapped to their value.
    payload : any
        Raw payload from the sender
    max_content_size : int, optional
        Character limit for content fields

    Returns
    -------
    any
        The validated model, or the bare value for root models

    Raises
    ------
    SchemaError
        If the payload does not match the schema

    """
    context = {"max_content_size": max_content_size or DEFAULT_MAX_CONTENT_SIZE}
    try:
        validated = schema.model_validate(payload, context=context)
    except PydanticValidationError as e:
        raise SchemaError(
            format_validation_error(e),
            issues=e.errors(include_url=False, include_context=False, include_input=False),
            original_error=e,
        ) from e

    if isinstance(validated, RootModel):
        return validated.root
    return validated


__all__ = [
    "SCHEMA_REGISTRY",
    "CommandPayload",
    "CopyImageToDocumentPayload",
    "CreateWindowForTabPayload",
    "ExportPdfPayload",
    "OpenExternalUrlPayload",
    "ReadFilePayload",
    "ReadImageFilePayload",
    "RevealInFinderPayload",
    "SaveFilePayload",
    "SaveImageFromDataPayload",
    "ShowUnsavedDialogPayload",
    "format_validation_error",
    "validate_payload",
]
