#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the mdguard library.

This module defines the exception taxonomy of the validation layer. The four
validators (content, path, URL and HTML) never raise; they return their
failures as values. These classes are what a rejected value turns into when a
caller asks for it to be raised (see ``ValidationResult.unwrap``), and what
the command gate catches and converts into error envelopes.

Exception Hierarchy
-------------------
- MdGuardError (base exception)

  - ValidationError (malformed input)
    - EncodingError (invalid UTF-8)
    - BinaryContentError (binary data masquerading as text)
    - SchemaError (command payload does not match its schema)
    - FileTooLargeError (file or payload exceeds size limits)

  - SecurityError (security violations)
    - UnsafePathError (bad extension or directory traversal)
    - UnsafeUrlError (blocked/unknown protocol, oversized, malformed URL)
    - OriginError (command from an untrusted sender)
    - RateLimitError (too many calls in the rate-limit window)

  - ParseError (sanitizer input could not be parsed)

  - HandlerError (business-logic failure inside a command handler)

  - ConfigurationError (invalid configuration file or environment)

"""

from __future__ import annotations

from typing import Any


class MdGuardError(Exception):
    """Base exception class for all mdguard-specific errors.

    Messages of mdguard errors are written to be shown to users, so the
    command gate passes them through (with paths redacted) even in production.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(MdGuardError):
    """Exception raised when input fails structural validation.

    Parameters
    ----------
    message : str
        Description of the validation error
    parameter_name : str, optional
        Name of the invalid parameter
    parameter_value : any, optional
        The invalid value that was provided
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any = None,
        original_error: Exception | None = None,
    ):
        """Initialize the validation error with parameter details."""
        super().__init__(message, original_error=original_error)
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value


class EncodingError(ValidationError):
    """Exception raised when file content is not valid UTF-8."""


class BinaryContentError(ValidationError):
    """Exception raised when file content appears to be binary rather than text."""


class FileTooLargeError(ValidationError):
    """Exception raised when a file or payload exceeds the configured size limit.

    Parameters
    ----------
    message : str
        Description of the size violation
    size : int, optional
        The offending size in bytes (or characters for payloads)
    limit : int, optional
        The configured limit

    """

    def __init__(self, message: str, size: int | None = None, limit: int | None = None):
        """Initialize the size error."""
        super().__init__(message, parameter_name="size", parameter_value=size)
        self.size = size
        self.limit = limit


class SchemaError(ValidationError):
    """Exception raised when a command payload does not match its declared schema.

    Parameters
    ----------
    message : str
        Human-readable summary of every failed field
    issues : list of dict, optional
        Structured issues as reported by the schema library
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        issues: list[dict[str, Any]] | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the schema error."""
        super().__init__(message, parameter_name="payload", original_error=original_error)
        self.issues = issues or []


class SecurityError(MdGuardError):
    """Base exception for security violations.

    This exception covers security-related errors such as:
    - Path traversal attempts
    - Dangerous URL protocols
    - Commands from untrusted senders
    - Resource exhaustion through repeated calls

    Parameters
    ----------
    message : str
        Description of the security violation
    original_error : Exception, optional
        The original exception that caused this error

    """


class UnsafePathError(SecurityError):
    """Exception raised when a path has a disallowed extension or escapes its base directory.

    Parameters
    ----------
    message : str
        Description of the violation
    path : str, optional
        The rejected path

    """

    def __init__(self, message: str, path: str | None = None, original_error: Exception | None = None):
        """Initialize the unsafe path error."""
        super().__init__(message, original_error=original_error)
        self.path = path


class UnsafeUrlError(SecurityError):
    """Exception raised when a URL is oversized, malformed, or uses a disallowed protocol."""


class OriginError(SecurityError):
    """Exception raised when a command arrives from an unknown or torn-down sender."""


class RateLimitError(SecurityError):
    """Exception raised when a sender exceeds the rate limit for a command."""


class ParseError(MdGuardError):
    """Exception raised when sanitizer input cannot be parsed."""


class HandlerError(MdGuardError):
    """Exception raised by command handlers for business-logic failures.

    Parameters
    ----------
    message : str
        User-safe description of the failure
    handler_name : str, optional
        Name of the command handler that failed
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, handler_name: str | None = None, original_error: Exception | None = None):
        """Initialize the handler error."""
        super().__init__(message, original_error=original_error)
        self.handler_name = handler_name


class ConfigurationError(MdGuardError):
    """Exception raised for invalid configuration files or environment overrides.

    Parameters
    ----------
    message : str
        Description of the configuration problem
    source : str, optional
        File path or environment variable the bad value came from
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, source: str | None = None, original_error: Exception | None = None):
        """Initialize the configuration error."""
        super().__init__(message, original_error=original_error)
        self.source = source


__all__ = [
    "MdGuardError",
    "ValidationError",
    "EncodingError",
    "BinaryContentError",
    "FileTooLargeError",
    "SchemaError",
    "SecurityError",
    "UnsafePathError",
    "UnsafeUrlError",
    "OriginError",
    "RateLimitError",
    "ParseError",
    "HandlerError",
    "ConfigurationError",
]
