"""Filename sanitization for downloaded distributions."""

import re
from urllib.parse import unquote, urlsplit


def sanitize_filename(filename: str | None, max_length: int = 255) -> str:
    """Sanitize a remote-provided filename for safe logging and storage.

    Prevents:
    - Path traversal attacks (../, etc.)
    - Log injection (newlines, control characters)
    - Excessively long filenames

    Args:
        filename: The raw filename
        max_length: Maximum allowed filename length

    Returns:
        A safe filename string
    """
    if not filename:
        return "download"

    safe_name = filename.replace("\\", "/")
    safe_name = safe_name.split("/")[-1]
    safe_name = safe_name.replace("..", "")

    safe_name = re.sub(r"[\x00-\x1f\x7f-\x9f\n\r]", "", safe_name)

    if len(safe_name) > max_length:
        # Preserve extension if present
        if "." in safe_name:
            name, ext = safe_name.rsplit(".", 1)
            ext = ext[:10]
            safe_name = name[: max_length - len(ext) - 1] + "." + ext
        else:
            safe_name = safe_name[:max_length]

    return safe_name or "download"


def filename_from_url(url: str) -> str:
    """Return the sanitized final path segment of a URL (query ignored)."""
    path = unquote(urlsplit(url).path)
    return sanitize_filename(path.rstrip("/").split("/")[-1])
