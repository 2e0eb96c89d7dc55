"""
Geotag overlay stamped on every captured image before upload.
"""
from __future__ import annotations

import io
import logging
from datetime import datetime
from typing import Optional

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

logger = logging.getLogger(__name__)

FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


def _load_font(size: int) -> ImageFont.ImageFont:
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split(" "):
        candidate = word if not current else f"{current} {word}"
        if current and draw.textlength(candidate, font=font) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def overlay_lines(
    latitude: Optional[str],
    longitude: Optional[str],
    location: Optional[str],
    now: datetime,
) -> tuple[str, str, str]:
    return (
        f"Timestamp: {now.strftime('%b %d, %Y, %I:%M:%S %p')}",
        f"Lat: {latitude or ''} | Long: {longitude or ''}",
        f"Location: {location or ''}",
    )


def add_overlay(
    image: bytes,
    latitude: Optional[str],
    longitude: Optional[str],
    location: Optional[str],
    now: Optional[datetime] = None,
) -> bytes:
    """Return a PNG of ``image`` with the timestamp / coordinates box drawn bottom-left.

    Bytes Pillow cannot decode are returned unchanged.
    """
    try:
        base = Image.open(io.BytesIO(image)).convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Overlay skipped, image not decodable: %s", e)
        return image

    width, height = base.size
    font_size = max(24, width // 30)
    margin = max(20, width // 50)
    line_height = font_size * 1.2
    padding = margin / 2
    font = _load_font(font_size)

    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)

    stamp, coords, place = overlay_lines(latitude, longitude, location, now or datetime.now())
    max_text_width = min(width * 0.9 - padding * 2, width - margin * 2 - padding * 2)
    lines = [stamp, coords, *wrap_text(draw, place, font, max_text_width)]

    box_height = len(lines) * line_height + padding * 2
    box_width = max(draw.textlength(line, font=font) for line in lines) + padding * 2
    top = height - margin - box_height
    draw.rectangle(
        [margin, top, margin + box_width, height - margin],
        fill=(0, 0, 0, 153),
    )

    y = top + padding
    for line in lines:
        draw.text(
            (margin + padding, y),
            line,
            font=font,
            fill=(255, 255, 255, 255),
            stroke_width=2,
            stroke_fill=(0, 0, 0, 255),
        )
        y += line_height

    out = io.BytesIO()
    Image.alpha_composite(base, layer).save(out, format="PNG")
    return out.getvalue()
