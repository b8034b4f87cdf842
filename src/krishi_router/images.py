"""Helpers for base64 images that may or may not carry a data-URL prefix."""
import base64
import re

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,", re.IGNORECASE)


def strip_data_url(data: str | None) -> str:
    """Return raw base64, dropping any leading ``data:<mime>;base64,`` marker."""
    if not data:
        return ""
    if "base64," in data:
        return data.split("base64,", 1)[1]
    return data


def ensure_data_url(data: str, mime_type: str = "image/jpeg") -> str:
    if "base64," in data:
        return data
    return f"data:{mime_type};base64,{data}"


def mime_type_of(data: str | None, default: str = "image/jpeg") -> str:
    match = _DATA_URL_RE.match(data or "")
    if match and match.group("mime"):
        return match.group("mime").lower()
    return default


def decode_image(data: str) -> bytes:
    """Decode a base64 image (raw or data URL) to bytes. Raises ValueError on bad input."""
    raw = strip_data_url(data)
    if not raw:
        raise ValueError("empty image payload")
    return base64.b64decode(raw, validate=False)
