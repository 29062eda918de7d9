"""Asset store backed by the slideomatic HTTP asset server."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from slideomatic.core.errors import (
    AssetStoreError,
    DeleteFailedError,
    ShareTooLargeError,
    UploadUnavailableError,
)
from slideomatic.core.images import encode_data_uri
from slideomatic.core.interfaces import AssetStore, ShareResult, UploadResult
from slideomatic.core.store_errors import error_message_from_response

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpAssetStore(AssetStore):
    """AssetStore that talks JSON to the `/assets` and `/shares` endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if client is None and not base_url:
            raise ValueError("HttpAssetStore needs a base_url or an httpx client.")
        self._owns_client = client is None
        self._client = (
            client if client is not None else httpx.Client(base_url=base_url or "", timeout=timeout)
        )

    def __enter__(self) -> HttpAssetStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def upload(self, data: bytes, mime_type: str, filename: str) -> UploadResult:
        payload = {
            "dataUrl": encode_data_uri(data, mime_type),
            "mimeType": mime_type,
            "filename": filename,
            "size": len(data),
        }
        try:
            response = self._client.post("/assets", json=payload)
        except httpx.HTTPError as exc:
            raise UploadUnavailableError(f"Asset upload failed: {exc}") from exc
        if response.is_error:
            message = error_message_from_response(response, "Unable to upload image asset")
            raise UploadUnavailableError(message, status_code=response.status_code)
        return UploadResult.model_validate(response.json())

    def fetch(self, asset_id: str) -> tuple[bytes, str]:
        try:
            response = self._client.get("/assets", params={"id": asset_id})
        except httpx.HTTPError as exc:
            raise AssetStoreError(f"Asset fetch failed: {exc}") from exc
        if response.is_error:
            message = error_message_from_response(response, f"Unable to load asset {asset_id}")
            raise AssetStoreError(message, status_code=response.status_code)
        mime_type = response.headers.get("content-type", "application/octet-stream")
        return response.content, mime_type.split(";", maxsplit=1)[0].strip()

    def delete_many(self, asset_ids: list[str]) -> int:
        if not asset_ids:
            return 0
        try:
            response = self._client.post("/assets/delete", json={"assetIds": asset_ids})
        except httpx.HTTPError as exc:
            raise DeleteFailedError(f"Asset delete failed: {exc}") from exc
        if response.is_error:
            message = error_message_from_response(response, "Failed to delete assets")
            raise DeleteFailedError(message, status_code=response.status_code)
        deleted = int(response.json().get("deleted", 0))
        logger.debug("Asset store deleted %d of %d asset(s)", deleted, len(asset_ids))
        return deleted

    def publish_share(self, payload: dict[str, Any]) -> ShareResult:
        try:
            response = self._client.post("/shares", json=payload)
        except httpx.HTTPError as exc:
            raise AssetStoreError(f"Share publish failed: {exc}") from exc
        if response.status_code == 413:
            body = _json_or_empty(response)
            raise ShareTooLargeError(
                error_message_from_response(response, "Deck is too large to share"),
                bytes_size=int(body.get("bytes", 0) or 0),
                limit=int(body.get("limit", 0) or 0),
            )
        if response.is_error:
            message = error_message_from_response(response, "Internal error creating share link")
            raise AssetStoreError(message, status_code=response.status_code)
        return ShareResult.model_validate(response.json())

    def fetch_share(self, share_id: str) -> dict[str, Any]:
        try:
            response = self._client.get("/shares", params={"id": share_id})
        except httpx.HTTPError as exc:
            raise AssetStoreError(f"Share fetch failed: {exc}") from exc
        if response.is_error:
            message = error_message_from_response(response, f"Share {share_id} not found")
            raise AssetStoreError(message, status_code=response.status_code)
        record = response.json()
        if not isinstance(record, dict) or not isinstance(record.get("slides"), list):
            raise AssetStoreError("Malformed shared deck payload")
        return record


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}

