"""Abstract interfaces for asset storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UploadResult(BaseModel):
    """Payload returned by the store after an upload."""

    model_config = ConfigDict(populate_by_name=True)

    asset_id: str = Field(alias="assetId")
    url: str
    bytes: int
    mime_type: str = Field(alias="mimeType")


class ShareResult(BaseModel):
    """Payload returned after publishing a deck for sharing."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    share_url: str | None = Field(default=None, alias="shareUrl")
    bytes: int


class AssetStore(ABC):
    """Interface for remote object storage of deck images."""

    @abstractmethod
    def upload(self, data: bytes, mime_type: str, filename: str) -> UploadResult:
        """Store image bytes and return the issued asset id and canonical URL."""

    @abstractmethod
    def fetch(self, asset_id: str) -> tuple[bytes, str]:
        """Return `(bytes, mime_type)` for a stored asset."""

    @abstractmethod
    def delete_many(self, asset_ids: list[str]) -> int:
        """Delete assets; unknown ids are ignored. Returns the deleted count."""

    def publish_share(self, payload: dict[str, Any]) -> ShareResult:
        """Publish a deck snapshot for sharing."""
        raise NotImplementedError(f"{type(self).__name__} does not support sharing.")

    def fetch_share(self, share_id: str) -> dict[str, Any]:
        """Load a published share record."""
        raise NotImplementedError(f"{type(self).__name__} does not support sharing.")
