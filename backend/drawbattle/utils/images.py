from __future__ import annotations

import base64
import binascii


IMAGE_MIME_TYPES = ("image/png", "image/jpeg", "image/webp")


def is_image_data_url(value: object) -> bool:
    if not isinstance(value, str):
        return False
    return any(value.startswith(f"data:{mime};base64,") for mime in IMAGE_MIME_TYPES)


def decode_image_data_url(data_url: str) -> tuple[str, bytes]:
    """Returns (mime_type, raw bytes) for a base64 image data URL."""
    if not is_image_data_url(data_url):
        raise ValueError("not a base64 image data URL")

    header, _, body = data_url.partition(",")
    mime_type = header[len("data:"):].split(";", 1)[0]
    try:
        data = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("invalid base64 image payload") from exc
    return mime_type, data
