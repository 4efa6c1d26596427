"""
Evidence watermarking.

Burns capture time, coordinates, address and accuracy into a dark band
at the bottom of the photo. Output is always JPEG.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Protocol
from zoneinfo import ZoneInfo

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from weighcheck.app.core.config import settings
from weighcheck.app.core.exceptions import UnreadableImageError
from weighcheck.app.services.location import LocationSample

logger = logging.getLogger("weighcheck.watermark")

register_heif_opener()

# Indonesian short month names, as shown on the field app
MONTHS_ID = ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"]

MANUAL_LOCATION_MARKER = "Manual location (no GPS)"

# Typography for a 2048 px reference edge
REFERENCE_EDGE = 2048
PADDING = 40
LINE_HEIGHT = 60
FONT_SIZES = {"primary": 48, "address": 40, "detail": 36}

BAND_ALPHA = 153  # 0.6 opacity
SHADOW_ALPHA = 204  # 0.8 opacity
SHADOW_OFFSET = 4
JPEG_QUALITY = 95

FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


@dataclass(frozen=True)
class OverlayLine:
    text: str
    style: str = "primary"


def format_timestamp(timestamp: datetime, tz_name: Optional[str] = None, tz_label: Optional[str] = None) -> str:
    """``dd Mon yyyy HH:MM:SS <label>`` in the display timezone."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    local = timestamp.astimezone(ZoneInfo(tz_name or settings.display_timezone))
    label = tz_label or settings.display_timezone_label
    return f"{local.day:02d} {MONTHS_ID[local.month - 1]} {local.year} {local:%H:%M:%S} {label}"


def build_overlay_lines(
    sample: LocationSample,
    timestamp: datetime,
    tz_name: Optional[str] = None,
    tz_label: Optional[str] = None,
) -> List[OverlayLine]:
    lines = [OverlayLine(format_timestamp(timestamp, tz_name, tz_label))]

    if sample.is_manual:
        lines.append(OverlayLine(MANUAL_LOCATION_MARKER))
    else:
        lines.append(OverlayLine(f"{sample.latitude:.6f}, {sample.longitude:.6f}"))

    if sample.address:
        lines.append(OverlayLine(sample.address, "address"))

    if sample.accuracy is None:
        lines.append(OverlayLine("Accuracy: n/a", "detail"))
    else:
        lines.append(OverlayLine(f"Accuracy: ±{round(sample.accuracy)}m", "detail"))

    return lines


class Renderer(Protocol):
    def render(self, image_bytes: bytes, lines: List[OverlayLine]) -> bytes:
        ...


def _load_font(size: int) -> ImageFont.ImageFont:
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _truncate(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> str:
    if draw.textlength(text, font=font) <= max_width:
        return text
    truncated = text
    while truncated and draw.textlength(truncated + "...", font=font) > max_width:
        truncated = truncated[:-1]
    return truncated + "..."


class PillowRenderer:
    """Draws the overlay band with Pillow at the image's native resolution."""

    def render(self, image_bytes: bytes, lines: List[OverlayLine]) -> bytes:
        try:
            with Image.open(io.BytesIO(image_bytes)) as source:
                image = ImageOps.exif_transpose(source).convert("RGB")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise UnreadableImageError(str(e))

        width, height = image.size
        scale = max(width, height) / REFERENCE_EDGE
        padding = max(1, round(PADDING * scale))
        line_height = max(1, round(LINE_HEIGHT * scale))
        shadow = max(1, round(SHADOW_OFFSET * scale))
        band_height = min(height, line_height * 4 + padding * 2)

        overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        draw.rectangle([(0, height - band_height), (width, height)], fill=(0, 0, 0, BAND_ALPHA))

        fonts = {style: _load_font(max(1, round(size * scale))) for style, size in FONT_SIZES.items()}
        max_text_width = width - padding * 2

        y = height - band_height + padding
        for line in lines:
            font = fonts.get(line.style, fonts["primary"])
            text = _truncate(draw, line.text, font, max_text_width)
            draw.text((padding + shadow, y + shadow), text, font=font, fill=(0, 0, 0, SHADOW_ALPHA))
            draw.text((padding, y), text, font=font, fill=(255, 255, 255, 255))
            y += line_height

        composed = Image.alpha_composite(image.convert("RGBA"), overlay).convert("RGB")
        buffer = io.BytesIO()
        composed.save(buffer, format="JPEG", quality=JPEG_QUALITY)
        return buffer.getvalue()


class WatermarkCompositor:
    def __init__(self, renderer: Optional[Renderer] = None, tz_name: Optional[str] = None, tz_label: Optional[str] = None):
        self.renderer = renderer or PillowRenderer()
        self.tz_name = tz_name
        self.tz_label = tz_label

    async def composite(self, image_bytes: bytes, sample: LocationSample, timestamp: datetime) -> bytes:
        """Return JPEG bytes of ``image_bytes`` with the capture overlay burned in."""
        lines = build_overlay_lines(sample, timestamp, self.tz_name, self.tz_label)
        return await asyncio.to_thread(self.renderer.render, image_bytes, lines)
