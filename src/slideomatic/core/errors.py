"""Error taxonomy for the image asset lifecycle."""

from __future__ import annotations


class AssetError(Exception):
    """Base class for asset lifecycle failures."""


class UnsupportedImageError(AssetError, ValueError):
    """Raised when an input is not a decodable ``image/*`` payload."""


class InputTooLargeError(AssetError):
    """Raised when no encoding fits under the hard byte ceiling."""

    def __init__(self, message: str, *, smallest_bytes: int | None = None) -> None:
        super().__init__(message)
        self.smallest_bytes = smallest_bytes


class AssetStoreError(AssetError):
    """Raised by asset store backends when a remote call fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UploadUnavailableError(AssetStoreError):
    """Raised when the remote store cannot accept an upload."""


class DeleteFailedError(AssetStoreError):
    """Raised when a batch delete call fails."""


class ShareTooLargeError(AssetError):
    """Raised when a shared deck or one of its assets exceeds the share ceiling."""

    def __init__(self, message: str, *, bytes_size: int, limit: int) -> None:
        super().__init__(message)
        self.bytes_size = bytes_size
        self.limit = limit


class MalformedReferenceError(AssetError, ValueError):
    """Raised when an image reference is missing fields for its storage mode."""

    def __init__(self, message: str, *, location: object | None = None) -> None:
        super().__init__(message)
        self.location = location
