"""Unpadded URL-safe base64 encoding."""

import base64


def encode(data: bytes) -> bytes:
    """Encode ``data`` as URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(bytes(data)).rstrip(b"=")