"""Removal of expired share records and assets."""

from __future__ import annotations

from datetime import datetime, timezone
import logging

from pydantic import BaseModel, ConfigDict, Field

from slideomatic.server.blobs import FileBlobStore
from slideomatic.server.common import DAY_MS, now_ms

logger = logging.getLogger(__name__)


class CleanupReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shares_scanned: int = Field(default=0, alias="sharesScanned")
    shares_deleted: int = Field(default=0, alias="sharesDeleted")
    assets_scanned: int = Field(default=0, alias="assetsScanned")
    assets_deleted: int = Field(default=0, alias="assetsDeleted")
    bytes_freed: int = Field(default=0, alias="bytesFreed")
    errors: list[str] = Field(default_factory=list)
    dry_run: bool = Field(default=False, alias="dryRun")
    timestamp: str = ""


def cleanup_expired(
    assets: FileBlobStore,
    shares: FileBlobStore,
    *,
    dry_run: bool = False,
    now: int | None = None,
) -> CleanupReport:
    """Delete shares past `expiresAt` (or with none recorded) and expired assets.

    Assets without an expiry are kept; they may still be referenced by
    decks that live outside the server.
    """
    current = now if now is not None else now_ms()
    report = CleanupReport(
        dry_run=dry_run,
        timestamp=datetime.fromtimestamp(current / 1000, tz=timezone.utc).isoformat(),
    )

    share_entries = shares.list_entries()
    report.shares_scanned = len(share_entries)
    for entry in share_entries:
        expires_at = entry.metadata.get("expiresAt")
        if expires_at and expires_at >= current:
            continue
        if expires_at:
            logger.info(
                "Deleting expired share %s (expired %d days ago)",
                entry.key,
                (current - expires_at) // DAY_MS,
            )
        else:
            logger.info("Deleting share %s with no expiry set", entry.key)
        try:
            if not dry_run:
                shares.delete(entry.key)
        except OSError as exc:
            report.errors.append(f"Share {entry.key}: {exc}")
            continue
        report.shares_deleted += 1
        report.bytes_freed += int(entry.metadata.get("bytes") or 0)

    asset_entries = assets.list_entries()
    report.assets_scanned = len(asset_entries)
    for entry in asset_entries:
        expires_at = entry.metadata.get("expiresAt")
        if not expires_at or expires_at >= current:
            continue
        logger.info("Deleting expired asset %s", entry.key)
        try:
            if not dry_run:
                assets.delete(entry.key)
        except OSError as exc:
            report.errors.append(f"Asset {entry.key}: {exc}")
            continue
        report.assets_deleted += 1
        report.bytes_freed += int(entry.metadata.get("bytes") or 0)

    logger.info(
        "Cleanup complete: %d/%d shares deleted, %d/%d assets deleted%s",
        report.shares_deleted,
        report.shares_scanned,
        report.assets_deleted,
        report.assets_scanned,
        " (dry run)" if dry_run else "",
    )
    return report
