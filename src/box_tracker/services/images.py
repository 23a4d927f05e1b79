"""Client-side image normalization before analysis."""

import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from box_tracker.domain.errors import ImageDecodeError

_DATA_URL_PREFIX = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")


@dataclass(frozen=True)
class ImagePreprocessor:
    """Shrinks and re-encodes photos to a bounded JPEG data URL."""

    max_dimension: int = 800
    quality: int = 70

    def compress(self, raw_image: bytes | str) -> str:
        """Return a JPEG data URL no larger than ``max_dimension`` on either side."""
        data = _raw_bytes(raw_image)
        try:
            with Image.open(BytesIO(data)) as source:
                image = ImageOps.exif_transpose(source).convert("RGB")
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as exc:
            raise ImageDecodeError(f"Could not decode image: {exc}") from exc
        image.thumbnail(
            (self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS
        )
        buffer = BytesIO()
        image.save(buffer, format="JPEG", quality=self.quality, optimize=True)
        return to_data_url(buffer.getvalue())


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def strip_data_url(payload: str) -> str:
    """Return the base64 body of a data URL, or the payload unchanged."""
    return _DATA_URL_PREFIX.sub("", payload.strip(), count=1)


def _raw_bytes(raw_image: bytes | str) -> bytes:
    if isinstance(raw_image, bytes | bytearray):
        return bytes(raw_image)
    try:
        return base64.b64decode(strip_data_url(raw_image), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError("Image payload is not valid base64") from exc


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
