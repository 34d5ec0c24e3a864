from __future__ import annotations


class ListingError(OSError):
    """Base class for failures that abort a directory listing."""


class NotFound(ListingError, FileNotFoundError):
    """The listed directory does not exist or a path component is invalid."""


class PermissionDenied(ListingError, PermissionError):
    """Opening the listed directory was refused."""


class IOFailure(ListingError):
    """Enumeration, stat or allocation failed while building a listing."""


class BufferOverflowError(IOFailure):
    """A write would move the cursor past the estimated capacity."""


class DirectoryAccessError(NotFound):
    """Raised when the requested path is outside the document root."""


class ConfigurationWarning(UserWarning):
    """Non-fatal configuration problem recorded while rendering a listing."""


class ConfigError(ValueError):
    """A configuration value could not be parsed."""
