"""Image reference model and data URI helpers."""

from __future__ import annotations

import base64
import binascii
from enum import Enum
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from slideomatic.core.errors import UnsupportedImageError

_DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>[^;,]+)?(?:;charset=[^;,]+)?;base64,(?P<data>.+)$",
    re.IGNORECASE | re.DOTALL,
)
_LEGACY_STORAGE_ALIASES = {"netlify-asset": "remote"}


class StorageMode(str, Enum):
    """Where the bytes behind an image reference live."""

    INLINE = "inline"
    REMOTE = "remote"


class ImageReference(BaseModel):
    """One embedded image and its storage mode.

    Field names follow the persisted deck schema (camelCase on the wire).
    Unknown fields are kept so older and newer decks round-trip intact.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    src: str = ""
    storage: StorageMode | None = None
    asset_id: str | None = Field(default=None, alias="assetId")
    alt: str | None = None
    label: str | None = None
    search: str | None = None
    original_filename: str | None = Field(default=None, alias="originalFilename")
    compressed_size: int | None = Field(default=None, alias="compressedSize")
    compressed_format: str | None = Field(default=None, alias="compressedFormat")
    uploaded_at: int | None = Field(default=None, alias="uploadedAt")

    @field_validator("storage", mode="before")
    @classmethod
    def normalize_storage(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        if isinstance(value, str):
            return _LEGACY_STORAGE_ALIASES.get(value.strip(), value.strip())
        return value

    @field_validator("asset_id", mode="before")
    @classmethod
    def normalize_asset_id(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def is_placeholder(self) -> bool:
        return not self.src

    @property
    def is_inline(self) -> bool:
        if self.storage is not None:
            return self.storage is StorageMode.INLINE
        return self.src.startswith("data:")

    @property
    def is_remote(self) -> bool:
        return self.storage is StorageMode.REMOTE

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def encode_data_uri(data: bytes, mime_type: str) -> str:
    """Build a base64 data URI for the given bytes."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_uri(data_uri: str, override_mime: str | None = None) -> tuple[bytes, str]:
    """Decode a base64 data URI into ``(bytes, mime_type)``.

    An ``image/*`` override wins over the declared type.
    """
    match = _DATA_URI_PATTERN.match(data_uri.strip())
    if match is None:
        raise UnsupportedImageError("Invalid data URL.")
    declared_mime = match.group("mime") or "application/octet-stream"
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise UnsupportedImageError("Data URL payload is not valid base64.") from exc
    mime_type = (
        override_mime
        if isinstance(override_mime, str) and override_mime.startswith("image/")
        else declared_mime
    )
    return data, mime_type.lower()


def is_data_uri(value: str | None) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def format_bytes(size: int | float | None) -> str:
    """Render a byte count as a short human-readable string."""
    if size is None:
        return ""
    threshold = 1024
    if abs(size) < threshold:
        return f"{int(size)} B"
    units = ("KB", "MB", "GB")
    value = float(size)
    index = -1
    while True:
        value /= threshold
        index += 1
        if abs(value) < threshold or index == len(units) - 1:
            break
    precision = 0 if index == 0 else 1
    return f"{value:.{precision}f} {units[index]}"
