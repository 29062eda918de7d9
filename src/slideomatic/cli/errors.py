"""Shared CLI error rendering helpers."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel

from slideomatic.core.errors import (
    AssetStoreError,
    DeleteFailedError,
    InputTooLargeError,
    MalformedReferenceError,
    ShareTooLargeError,
    UnsupportedImageError,
)
from slideomatic.core.images import format_bytes
from slideomatic.core.store_errors import extract_status_code, is_service_unavailable_error


@dataclass(frozen=True)
class ErrorInfo:
    code: int | None
    message: str


def render_cli_error(
    exc: BaseException,
    *,
    console: Console,
    action: str | None = None,
) -> None:
    """Render a friendly TUI panel for a command failure."""
    info = ErrorInfo(code=extract_status_code(exc), message=_normalize_text(str(exc)))
    title, summary, hint = _classify_error(exc, info)

    lines: list[str] = []
    if action:
        lines.append(f"[bold]{action}[/]")
        lines.append("")
    lines.append(f"[bold red]{title}[/]")
    lines.append(summary)
    if info.code is not None:
        lines.append(f"[dim]Server status: {info.code}[/]")
    if hint:
        lines.append(f"[dim]{hint}[/]")
    if info.message and info.message.lower() not in summary.lower():
        lines.append(f"[dim]Details: {info.message}[/]")

    console.print(
        Panel.fit(
            "\n".join(lines),
            title="slideomatic",
            border_style="red",
        )
    )


def _classify_error(exc: BaseException, info: ErrorInfo) -> tuple[str, str, str]:
    if isinstance(exc, KeyboardInterrupt):
        return (
            "Command cancelled",
            "The command was cancelled before it finished.",
            "",
        )
    if isinstance(exc, InputTooLargeError):
        smallest = (
            f" The smallest encoding was {format_bytes(exc.smallest_bytes)}."
            if exc.smallest_bytes
            else ""
        )
        return (
            "Image too large",
            f"The image could not be compressed under the size ceiling.{smallest}",
            "Export a smaller or lower-resolution source image and try again.",
        )
    if isinstance(exc, UnsupportedImageError):
        return (
            "Unsupported file",
            "Only image files can be added to a deck.",
            "Use a PNG, JPEG, WebP or GIF image.",
        )
    if isinstance(exc, MalformedReferenceError):
        return (
            "Corrupt image reference",
            "The deck contains an image whose fields contradict its storage mode.",
            "Re-upload the image or remove it with `slideomatic remove-image`.",
        )
    if isinstance(exc, ShareTooLargeError):
        return (
            "Deck too large to share",
            f"The shared deck exceeds the {format_bytes(exc.limit)} share ceiling.",
            "Compress or remove large inline images, then share again.",
        )
    if isinstance(exc, DeleteFailedError):
        return (
            "Asset cleanup failed",
            "Some removed images could not be deleted from the asset server.",
            "Your deck is saved. The unused files stay on the asset server until removed there.",
        )
    if isinstance(exc, AssetStoreError) and info.code == 404:
        return (
            "Not found",
            "The asset server does not know the requested id.",
            "Check the id and the configured server URL.",
        )
    if isinstance(exc, AssetStoreError) and is_service_unavailable_error(exc):
        return (
            "Asset server unavailable",
            "The asset server could not be reached or is overloaded.",
            "Start it with `slideomatic serve` or set SLIDEOMATIC_API_URL, then retry.",
        )
    if isinstance(exc, FileNotFoundError):
        return (
            "File not found",
            "A required file does not exist.",
            "Run `slideomatic init` to create a deck in this directory.",
        )
    return (
        "Command failed",
        "An unexpected error occurred while running this command.",
        "Try again. If the issue persists, rerun with --verbose for more context.",
    )


def _normalize_text(text: str) -> str:
    collapsed = " ".join(text.split())
    if len(collapsed) <= 240:
        return collapsed
    return f"{collapsed[:237]}..."
