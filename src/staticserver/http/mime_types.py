"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps asset file extensions to the Content-Type the static handler sends.

The Content-Type chosen here is exactly what the compression layer reads
when it decides whether to gzip a response, so the table doubles as the
"what gets compressed" table for the bundled assets:

    ┌──────────────────┬──────────────────────────┬─────────────┐
    │ extension        │ Content-Type             │ compressed? │
    ├──────────────────┼──────────────────────────┼─────────────┤
    │ .html .css .js   │ text/...                 │ yes         │
    │ .json .map       │ application/json         │ yes         │
    │ .svg             │ image/svg+xml            │ yes         │
    │ .png .jpg .webp  │ image/...                │ no          │
    │ .woff2 .gz .zip  │ font/... application/... │ no          │
    └──────────────────┴──────────────────────────┴─────────────┘

Binary formats are already compressed internally; running gzip over them
burns CPU for no gain.

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional, Union


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Structured data
    ".json": "application/json",
    ".map": "application/json",     # source maps
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".xhtml": "application/xhtml+xml",
    ".wasm": "application/wasm",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Media
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Archives and documents
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* and image/* types that are text underneath and get a charset
_TEXT_LIKE = {
    "application/json",
    "application/manifest+json",
    "application/xml",
    "application/xhtml+xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: Union[str, PurePosixPath], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file from its extension.

        >>> get_mime_type("css/site.css")
        'text/css'
        >>> get_mime_type("blob.bin")
        'application/octet-stream'
    """
    extension = PurePosixPath(str(path)).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type represents text content (and takes a charset)."""
    return mime_type.startswith("text/") or mime_type in _TEXT_LIKE


def get_content_type(path: Union[str, PurePosixPath], charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for a file.

        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("logo.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
