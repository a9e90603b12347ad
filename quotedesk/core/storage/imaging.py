"""Image payload transforms applied before an attachment is stored."""

from __future__ import annotations

import io
from collections.abc import Callable

from PIL import Image

from quotedesk.core.exceptions import TransformError

ImageTransform = Callable[[bytes], bytes]
"""Re-encodes an image payload. Raises on undecodable input."""

IMAGE_MEDIA_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})


def identity_transform(payload: bytes) -> bytes:
    return payload


class PillowImageTransform:
    """Downsize to ``max_dimension`` on the longest side and re-encode.

    The source format is kept. Images already within bounds are re-encoded
    at the configured quality but never upscaled.
    """

    def __init__(self, max_dimension: int = 1920, quality: int = 80) -> None:
        self.max_dimension = max_dimension
        self.quality = quality

    def __call__(self, payload: bytes) -> bytes:
        try:
            with Image.open(io.BytesIO(payload)) as source:
                image_format = source.format or "JPEG"
                source.load()
                image = source.copy()
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise TransformError(f"Cannot decode image: {exc}") from exc

        image.thumbnail((self.max_dimension, self.max_dimension))
        options: dict[str, object] = {"optimize": True}
        if image_format == "JPEG":
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            options["quality"] = self.quality

        buffer = io.BytesIO()
        try:
            image.save(buffer, format=image_format, **options)
        except (OSError, ValueError) as exc:
            raise TransformError(f"Cannot encode {image_format} image: {exc}") from exc
        return buffer.getvalue()


__all__ = ["IMAGE_MEDIA_TYPES", "ImageTransform", "PillowImageTransform", "identity_transform"]
