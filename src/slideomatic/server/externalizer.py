"""Convert inline images to stored assets when a deck is published."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import hashlib
import json
import logging
from typing import Any

from slideomatic.core.deck import DEFAULT_DECK_NAME, Deck
from slideomatic.core.errors import ShareTooLargeError
from slideomatic.core.images import StorageMode, decode_data_uri, format_bytes
from slideomatic.core.scanner import ImageLocation, get_image, scan, set_image
from slideomatic.server.blobs import FileBlobStore
from slideomatic.server.common import (
    DAY_MS,
    SHARE_RECORD_VERSION,
    create_asset_id,
    create_share_id,
    now_ms,
)

logger = logging.getLogger(__name__)


@dataclass
class _PendingAsset:
    data: bytes
    mime_type: str
    filename: str
    locations: list[ImageLocation] = field(default_factory=list)


@dataclass(frozen=True)
class ExternalizedAssets:
    asset_ids: list[str]
    created: list[str]


@dataclass(frozen=True)
class PublishedShare:
    id: str
    bytes: int
    record: dict[str, Any]


class ShareExternalizer:
    """Rewrites inline references as remote ones and stores the share record.

    Every inline payload is checked against the share ceiling before any
    bytes are written, so a rejected publish leaves no assets behind.
    """

    def __init__(
        self,
        assets: FileBlobStore,
        shares: FileBlobStore,
        *,
        max_asset_bytes: int,
        max_deck_bytes: int,
        ttl_days: int,
    ) -> None:
        self._assets = assets
        self._shares = shares
        self.max_asset_bytes = max_asset_bytes
        self.max_deck_bytes = max_deck_bytes
        self.ttl_days = ttl_days

    def externalize(self, deck: Deck, asset_url: Callable[[str], str]) -> ExternalizedAssets:
        """Store every inline image of `deck` and point its references at the copies.

        Identical payloads are stored once. Remote references are kept and
        their ids reported alongside the new ones.
        """
        asset_ids: list[str] = []
        pending: dict[str, _PendingAsset] = {}
        for entry in scan(deck, strict=True):
            image = entry.image
            if image.is_remote and image.asset_id:
                asset_ids.append(image.asset_id)
                continue
            if not image.is_inline or image.is_placeholder:
                continue
            data, mime_type = decode_data_uri(image.src)
            if len(data) > self.max_asset_bytes:
                raise ShareTooLargeError(
                    f"The image at {entry.location} is too large to share "
                    f"({format_bytes(len(data))}, max {format_bytes(self.max_asset_bytes)}). "
                    "Compress it and try again.",
                    bytes_size=len(data),
                    limit=self.max_asset_bytes,
                )
            digest = hashlib.sha256(data).hexdigest()
            slot = pending.setdefault(
                digest,
                _PendingAsset(
                    data=data,
                    mime_type=mime_type,
                    filename=image.original_filename or "shared-image",
                ),
            )
            slot.locations.append(entry.location)

        created: list[str] = []
        try:
            for slot in pending.values():
                asset_id = create_asset_id(slot.filename)
                self._assets.set(
                    asset_id,
                    slot.data,
                    {
                        "bytes": len(slot.data),
                        "mimeType": slot.mime_type,
                        "source": "share-inline",
                        "createdAt": now_ms(),
                    },
                )
                created.append(asset_id)
                url = asset_url(asset_id)
                for location in slot.locations:
                    _point_at_asset(deck, location, asset_id, url)
        except OSError:
            self.discard(created)
            raise
        return ExternalizedAssets(asset_ids=_unique(asset_ids + created), created=created)

    def publish(
        self,
        deck: Deck,
        *,
        theme: Any = None,
        meta: dict[str, Any] | None = None,
        asset_url: Callable[[str], str],
    ) -> PublishedShare:
        """Externalize inline images and store the share record."""
        externalized = self.externalize(deck, asset_url)
        meta = dict(meta or {})
        created_at = now_ms()
        record: dict[str, Any] = {
            "version": SHARE_RECORD_VERSION,
            "slides": [slide.to_payload() for slide in deck.slides],
            "theme": theme,
            "meta": {
                **meta,
                "title": meta.get("title") or DEFAULT_DECK_NAME,
                "createdAt": meta.get("createdAt") or created_at,
            },
        }
        if externalized.asset_ids:
            record["assets"] = externalized.asset_ids

        serialized = json.dumps(record, separators=(",", ":")).encode("utf-8")
        if len(serialized) > self.max_deck_bytes:
            self.discard(externalized.created)
            raise ShareTooLargeError(
                f"Deck is too large to share ({format_bytes(len(serialized))}, "
                f"max {format_bytes(self.max_deck_bytes)}).",
                bytes_size=len(serialized),
                limit=self.max_deck_bytes,
            )

        share_id = create_share_id()
        self._shares.set(
            share_id,
            serialized,
            {
                "bytes": len(serialized),
                "createdAt": created_at,
                "expiresAt": created_at + self.ttl_days * DAY_MS,
            },
        )
        logger.info(
            "Published share %s (%d bytes, %d new asset(s))",
            share_id,
            len(serialized),
            len(externalized.created),
        )
        return PublishedShare(id=share_id, bytes=len(serialized), record=record)

    def discard(self, asset_ids: list[str]) -> None:
        """Remove assets stored by a publish that did not complete."""
        for asset_id in asset_ids:
            try:
                self._assets.delete(asset_id)
            except OSError as exc:
                logger.warning("Failed to roll back shared asset %s: %s", asset_id, exc)


def _point_at_asset(deck: Deck, location: ImageLocation, asset_id: str, url: str) -> None:
    image = get_image(deck, location)
    if image is None:
        return
    set_image(
        deck,
        location,
        image.model_copy(
            update={"src": url, "storage": StorageMode.REMOTE, "asset_id": asset_id}
        ),
    )


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))
