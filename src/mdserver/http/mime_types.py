"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent with literal files.

=============================================================================
LOOKUP ORDER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   "report.pdf"                                                      │
    │        │                                                             │
    │        ▼                                                             │
    │   1. MIME_OVERRIDES   web types whose system mapping varies by OS   │
    │        │  miss                                                       │
    │        ▼                                                             │
    │   2. mimetypes        the system registry (/etc/mime.types, ...)    │
    │        │  miss                                                       │
    │        ▼                                                             │
    │   3. None             caller leaves Content-Type unset              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Unknown extensions deliberately produce no Content-Type at all, the same
as the original Go server did with mime.TypeByExtension returning "".

=============================================================================
"""

import mimetypes
from pathlib import Path
from typing import Optional


# Extensions where distributions disagree (or ship nothing) and browsers care.
MIME_OVERRIDES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".svg": "image/svg+xml",
    ".wasm": "application/wasm",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".md": "text/markdown",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
}

_TEXT_LIKE = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: str | Path) -> Optional[str]:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("archive.unknownext") is None
        True
    """
    extension = Path(path).suffix.lower()
    if not extension:
        return None

    if extension in MIME_OVERRIDES:
        return MIME_OVERRIDES[extension]

    mime_type, _ = mimetypes.guess_type(f"file{extension}", strict=False)
    return mime_type


def is_text_type(mime_type: str) -> bool:
    """Check whether a MIME type should carry a charset parameter."""
    return mime_type.startswith("text/") or mime_type in _TEXT_LIKE


def get_content_type(path: str | Path, charset: str = "utf-8") -> Optional[str]:
    """
    Full Content-Type header value for a file, or None when unknown.

    Examples:
        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if mime_type is None:
        return None

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"

    return mime_type
