"""
Listing image payloads are data URLs (``data:image/<type>;base64,<payload>``).
normalize_data_url() decodes one, shrinks it so the long edge fits the configured
maximum and re-encodes it as JPEG.
"""
import base64
import binascii
import io
import re

from django.conf import settings
from django.core.exceptions import ValidationError
from PIL import Image, UnidentifiedImageError

_DATA_URL_RE = re.compile(r"^data:image/(?P<subtype>[a-zA-Z0-9.+-]+);base64,(?P<payload>[A-Za-z0-9+/=\s]+)$")


def decode_data_url(value: str) -> bytes:
    match = _DATA_URL_RE.match(value or "")
    if not match:
        raise ValidationError("Images must be base64 data URLs (data:image/...;base64,...).")
    try:
        return base64.b64decode(match.group("payload"), validate=False)
    except (binascii.Error, ValueError):
        raise ValidationError("Image payload is not valid base64.")


def normalize_data_url(value: str, max_dimension: int = None, quality: int = None) -> str:
    """Return a JPEG data URL no larger than ``max_dimension`` on its long edge."""
    max_dimension = max_dimension or getattr(settings, "MARKETPLACE_IMAGE_MAX_DIMENSION", 800)
    quality = quality or getattr(settings, "MARKETPLACE_IMAGE_QUALITY", 70)
    raw = decode_data_url(value)
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except Image.DecompressionBombError:
        raise ValidationError("Image dimensions are too large.")
    except (UnidentifiedImageError, OSError):
        raise ValidationError("Image payload could not be read as an image.")

    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    # thumbnail keeps the aspect ratio and never upscales
    image.thumbnail((max_dimension, max_dimension))

    out = io.BytesIO()
    image.save(out, format="JPEG", quality=quality)
    encoded = base64.b64encode(out.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"
