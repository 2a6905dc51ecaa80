"""Content-type guessing by file extension."""

import mimetypes
import posixpath

DEFAULT_TYPE = 'text/plain'

# Web types missing from the stdlib defaults on some Python versions
EXTRA_TYPES = {
    '.wasm': 'application/wasm',
    '.mjs': 'text/javascript',
    '.webmanifest': 'application/manifest+json',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
    '.webp': 'image/webp',
    '.avif': 'image/avif',
    '.gz': 'application/gzip',
    '.bz2': 'application/x-bzip2',
    '.xz': 'application/x-xz',
    '.br': 'application/x-brotli',
    '.zst': 'application/zstd',
}

# Private table: the built-in defaults only, never the host's mime.types files
_table = mimetypes.MimeTypes()
for _ext, _type in EXTRA_TYPES.items():
    if _ext not in _table.types_map[True]:
        _table.add_type(_type, _ext)


def guess_type(path: str) -> str:
    """
    Return the MIME type for the final extension of path, or 'text/plain'
    when the extension is absent or unknown. File contents are never read.
    """
    ext = posixpath.splitext(path)[1]
    if not ext:
        return DEFAULT_TYPE
    strict, loose = _table.types_map
    return (strict.get(ext) or strict.get(ext.lower())
            or loose.get(ext) or loose.get(ext.lower())
            or DEFAULT_TYPE)
