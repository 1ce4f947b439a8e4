import re
from typing import Optional, Tuple

HEX_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")
BIT_STRING_RE = re.compile(r"^[01]+$")


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format."""
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes /= 1024.0
        i += 1

    return f"{size_bytes:.1f} {size_names[i]}"


def normalize_mime_type(mime_type: Optional[str]) -> Optional[str]:
    """Lower-case a mime type and drop parameters such as ``; charset=...``."""
    if not mime_type:
        return None
    base = mime_type.split(";", 1)[0].strip().lower()
    if "/" not in base or base.startswith("/") or base.endswith("/"):
        return None
    return base


def is_image_type(mime_type: Optional[str]) -> bool:
    normalized = normalize_mime_type(mime_type)
    return bool(normalized and normalized.startswith("image/"))


def is_hex_digest(value: Optional[str]) -> bool:
    return bool(value) and HEX_DIGEST_RE.match(value) is not None


def is_bit_string(value: Optional[str]) -> bool:
    return bool(value) and BIT_STRING_RE.match(value) is not None


def parse_storage_uri(storage_ref: str) -> Tuple[str, str]:
    """
    Split a storage reference into (scheme, location).

    ``gs://bucket/path`` -> ("gs", "bucket/path"), ``walrus://cid`` ->
    ("walrus", "cid"), ``local:///tmp/x`` -> ("local", "/tmp/x"). A bare
    reference without a scheme is treated as a Walrus content id.
    """
    if "://" not in storage_ref:
        return "walrus", storage_ref
    scheme, location = storage_ref.split("://", 1)
    return scheme.lower(), location
