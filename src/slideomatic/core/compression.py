"""Search a format/dimension/quality grid for an encoding under a byte budget."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError
from pydantic import BaseModel

from slideomatic.core.config import ImageSettings
from slideomatic.core.errors import InputTooLargeError, UnsupportedImageError
from slideomatic.core.images import format_bytes

logger = logging.getLogger(__name__)

_PIL_FORMATS = {
    "image/webp": "WEBP",
    "image/jpeg": "JPEG",
    "image/png": "PNG",
}
_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg", "image/x-png": "image/png"}
_LOSSLESS_FORMATS = {"image/png"}


class CompressionResult(BaseModel):
    """Outcome of a negotiation."""

    data: bytes
    mime_type: str
    hit_soft_limit: bool = False
    width: int | None = None
    height: int | None = None
    quality: float | None = None

    @property
    def size(self) -> int:
        return len(self.data)


class CompressionNegotiator:
    """Find the first encoding under `target_bytes`, else the smallest under `max_bytes`.

    Formats are tried in priority order (WebP, the source format, JPEG, PNG).
    Within a format, each quality level (highest first) walks every dimension
    cap from largest to smallest, so a smaller image is preferred over a
    lower quality. PNG is lossless and walks the caps once.
    """

    def __init__(
        self,
        *,
        target_bytes: int,
        max_bytes: int,
        dimension_steps: list[int],
        quality_steps: list[float],
    ) -> None:
        if max_bytes < target_bytes:
            raise ValueError("max_bytes must be greater than or equal to target_bytes.")
        self.target_bytes = target_bytes
        self.max_bytes = max_bytes
        self.dimension_steps = sorted(dimension_steps, reverse=True)
        self.quality_steps = sorted(quality_steps, reverse=True)

    @classmethod
    def from_settings(cls, settings: ImageSettings) -> CompressionNegotiator:
        return cls(
            target_bytes=settings.target_bytes,
            max_bytes=settings.max_bytes,
            dimension_steps=list(settings.dimension_steps),
            quality_steps=list(settings.quality_steps),
        )

    def candidate_formats(self, mime_type: str) -> list[str]:
        """Return output MIME types in the order they are attempted."""
        source = normalize_mime_type(mime_type)
        ordered: list[str] = []
        for candidate in ("image/webp", source, "image/jpeg", "image/png"):
            if candidate in _PIL_FORMATS and candidate not in ordered:
                ordered.append(candidate)
        return ordered

    def negotiate(self, data: bytes, mime_type: str) -> CompressionResult:
        normalized_mime = normalize_mime_type(mime_type)
        if not normalized_mime.startswith("image/"):
            raise UnsupportedImageError(f"Only image uploads are supported (got {mime_type!r}).")
        if len(data) <= self.target_bytes:
            return CompressionResult(data=data, mime_type=normalized_mime, hit_soft_limit=False)

        source = _open_image(data)
        best: CompressionResult | None = None
        smallest_seen: int | None = None

        # Caps at or above the source size all produce the same image.
        resized_steps: list[tuple[int, Image.Image]] = []
        for dimension in self.dimension_steps:
            resized = _resize(source, dimension)
            if resized_steps and resized_steps[-1][1].size == resized.size:
                continue
            resized_steps.append((dimension, resized))

        for output_mime in self.candidate_formats(normalized_mime):
            qualities: list[float | None] = (
                [None] if output_mime in _LOSSLESS_FORMATS else list(self.quality_steps)
            )
            # Quality is the outer loop: every smaller cap is tried before
            # dropping to the next quality level.
            for quality in qualities:
                for dimension, resized in resized_steps:
                    try:
                        encoded = self._encode(resized, output_mime, dimension, quality)
                    except (OSError, ValueError) as exc:
                        logger.warning(
                            "Compression attempt failed (%s @ %spx, q=%s): %s",
                            output_mime,
                            dimension,
                            quality,
                            exc,
                        )
                        continue

                    size = len(encoded)
                    smallest_seen = size if smallest_seen is None else min(smallest_seen, size)
                    candidate = CompressionResult(
                        data=encoded,
                        mime_type=output_mime,
                        width=resized.width,
                        height=resized.height,
                        quality=quality,
                    )
                    if size <= self.target_bytes:
                        logger.debug(
                            "Compressed to %s as %s @ %spx q=%s",
                            format_bytes(size),
                            output_mime,
                            dimension,
                            quality,
                        )
                        return candidate
                    if size <= self.max_bytes and (best is None or size < best.size):
                        best = candidate.model_copy(update={"hit_soft_limit": True})

        if best is not None:
            logger.warning(
                "Image landed above soft target (%s > %s).",
                format_bytes(best.size),
                format_bytes(self.target_bytes),
            )
            return best

        raise InputTooLargeError(
            f"Could not shrink image under {format_bytes(self.max_bytes)}. "
            "Try exporting a smaller source.",
            smallest_bytes=smallest_seen,
        )

    def _encode(
        self,
        image: Image.Image,
        mime_type: str,
        dimension: int,
        quality: float | None,
    ) -> bytes:
        pil_format = _PIL_FORMATS[mime_type]
        prepared = _prepare_mode(image, pil_format)
        buffer = io.BytesIO()
        if pil_format == "PNG":
            prepared.save(buffer, format="PNG", optimize=True)
        elif pil_format == "JPEG":
            prepared.save(
                buffer,
                format="JPEG",
                quality=_pil_quality(quality),
                optimize=True,
                progressive=True,
            )
        else:
            prepared.save(buffer, format="WEBP", quality=_pil_quality(quality), method=4)
        return buffer.getvalue()


def normalize_mime_type(mime_type: str | None) -> str:
    normalized = (mime_type or "").split(";", maxsplit=1)[0].strip().lower()
    return _MIME_ALIASES.get(normalized, normalized)


def _open_image(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.load()
            return ImageOps.exif_transpose(opened) or opened.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedImageError("Unable to decode image data.") from exc


def _resize(image: Image.Image, dimension: int) -> Image.Image:
    if max(image.size) <= dimension:
        return image
    resized = image.copy()
    resized.thumbnail((dimension, dimension), Image.Resampling.LANCZOS)
    return resized


def _prepare_mode(image: Image.Image, pil_format: str) -> Image.Image:
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if pil_format == "JPEG":
        if has_alpha:
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return image if image.mode == "RGB" else image.convert("RGB")
    if pil_format == "WEBP":
        target_mode = "RGBA" if has_alpha else "RGB"
        return image if image.mode == target_mode else image.convert(target_mode)
    if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        return image.convert("RGBA" if has_alpha else "RGB")
    return image


def _pil_quality(quality: float | None) -> int:
    if quality is None:
        return 90
    return max(1, min(100, round(quality * 100)))
