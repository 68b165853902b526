"""
Cover art loading for the player window.

Covers are letterboxed onto a square canvas so every track occupies the same
space. A missing or unreadable cover gets a generated placeholder instead.
Returns plain PIL images; the window wraps them in CTkImage.
"""

import os
import logging
from typing import Optional

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

logger = logging.getLogger("CrossfadeDeck.Artwork")


def _hex_to_rgb(color: str):
    color = color.lstrip("#")
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


def letterbox(image: Image.Image, size: int, background: str = "#000000") -> Image.Image:
    """Scale to fit inside size x size, centered on a solid background."""
    image = image.convert("RGB")
    ratio = min(size / image.width, size / image.height)
    new_width = max(1, int(image.width * ratio))
    new_height = max(1, int(image.height * ratio))
    resized = image.resize((new_width, new_height), Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", (size, size), _hex_to_rgb(background))
    canvas.paste(resized, ((size - new_width) // 2, (size - new_height) // 2))
    return canvas


def make_placeholder(size: int, title: str = "", background: str = "#171a2b",
                     accent: str = "#ff4fa3") -> Image.Image:
    """Vinyl-style disc with the title's initial."""
    image = Image.new("RGB", (size, size), _hex_to_rgb(background))
    draw = ImageDraw.Draw(image)

    margin = size // 8
    draw.ellipse((margin, margin, size - margin, size - margin), outline=_hex_to_rgb(accent), width=max(2, size // 60))
    hub = size // 10
    center = size // 2
    draw.ellipse((center - hub, center - hub, center + hub, center + hub), fill=_hex_to_rgb(accent))

    initial = title.strip()[:1].upper()
    if initial:
        font = ImageFont.load_default()
        left, top, right, bottom = draw.textbbox((0, 0), initial, font=font)
        origin = (center - (right - left) // 2 - left, center - (bottom - top) // 2 - top)
        draw.text(origin, initial, fill=_hex_to_rgb(background), font=font)
    return image


def load_cover(path: Optional[str], size: int, title: str = "",
               background: str = "#000000", accent: str = "#ff4fa3") -> Image.Image:
    """
    Load a track's cover.

    Args:
        path: Image file (None or missing -> placeholder)
        size: Edge length of the square result in pixels
        title: Used for the placeholder's initial
    """
    if path and os.path.isfile(path):
        try:
            with Image.open(path) as img:
                return letterbox(img, size, background)
        except (OSError, UnidentifiedImageError) as e:
            logger.warning(f"Could not load cover {os.path.basename(path)}: {e}")
    elif path:
        logger.debug(f"Cover not found: {path}")
    return make_placeholder(size, title, background, accent)
