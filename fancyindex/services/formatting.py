"""Byte-level formatting of the pieces that make up one listing row."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fancyindex.services.file_catalog import DirectoryEntry

NAME_LEN = 50
TRUNCATION_MARKER = b"..&gt;"

KIB = 1024
MIB = 1024 * 1024
GIB = 1024 * 1024 * 1024

MONTHS = (b"Jan", b"Feb", b"Mar", b"Apr", b"May", b"Jun",
          b"Jul", b"Aug", b"Sep", b"Oct", b"Nov", b"Dec")

# space, '"', '#', '%', '&', "'", '<', '>', control bytes and everything >= 0x7f
_URI_UNSAFE = frozenset(range(0x21)) | frozenset(b"\"#%&'<>") | frozenset(range(0x7F, 0x100))
_ESCAPED = tuple(
    b"%%%02X" % byte if byte in _URI_UNSAFE else bytes((byte,))
    for byte in range(256)
)


def count_html_escapes(name: bytes) -> int:
    """Number of bytes in ``name`` that ``escape_html_uri`` percent-encodes."""
    return sum(1 for byte in name if byte in _URI_UNSAFE)


def escape_html_uri(name: bytes) -> bytes:
    """Percent-encode ``name`` for use inside a quoted ``href`` attribute.

    Every escaped byte grows by exactly two, so the result is
    ``len(name) + 2 * count_html_escapes(name)`` bytes long.
    """
    return b"".join(_ESCAPED[byte] for byte in name)


def utf8_length(name: bytes) -> int:
    """Count codepoints in ``name``, or bytes when it is not valid UTF-8."""
    try:
        return len(name.decode("utf-8"))
    except UnicodeDecodeError:
        return len(name)


def utf8_prefix(name: bytes, units: int) -> bytes:
    """Return at most ``units`` whole codepoints from the start of ``name``."""
    return name.decode("utf-8")[:units].encode("utf-8")


def scale_size(size: int) -> tuple[int, bytes]:
    """Return ``(magnitude, suffix)`` for a file size, rounding half up."""

    if size > GIB - 1:
        unit, suffix = GIB, b"G"
    elif size > MIB - 1:
        unit, suffix = MIB, b"M"
    elif size > 9999:
        unit, suffix = KIB, b"K"
    else:
        return size, b""

    magnitude, remainder = divmod(size, unit)
    if remainder > unit // 2 - 1:
        magnitude += 1
    return magnitude, suffix


def format_size(size: int, is_dir: bool, exact: bool) -> bytes:
    """Render the size column; at most 20 bytes."""

    if is_dir:
        return b"-"
    if exact:
        return b"%19d" % size

    magnitude, suffix = scale_size(size)
    if suffix:
        return b"%6d%s" % (magnitude, suffix)
    return b" %6d" % magnitude


def local_utc_offset() -> int:
    """Seconds east of UTC for the local timezone right now."""
    return time.localtime().tm_gmtoff


def format_mtime(mtime: int, gmtoff: int = 0) -> bytes:
    tm = time.gmtime(mtime + gmtoff)
    return b"%02d-%s-%d %02d:%02d" % (
        tm.tm_mday,
        MONTHS[tm.tm_mon - 1],
        tm.tm_year,
        tm.tm_hour,
        tm.tm_min,
    )


def render_link_target(entry: DirectoryEntry) -> bytes:
    """Return the ``href`` value for ``entry``; directories get a trailing slash."""

    target = escape_html_uri(entry.name) if entry.escape_extra else entry.name
    if entry.is_dir:
        target += b"/"
    return target


def render_visible_text(entry: DirectoryEntry) -> bytes:
    """Return the link text for ``entry``, truncated to ``NAME_LEN`` display units.

    The text is copied raw, never HTML-escaped. Long names keep their first
    ``NAME_LEN - 3`` units followed by ``TRUNCATION_MARKER``; in multi-byte
    mode the cut always falls on a codepoint boundary.
    """

    length = entry.display_length
    truncated = length > NAME_LEN
    units = NAME_LEN - 3 if truncated else NAME_LEN

    if len(entry.name) != length:
        text = utf8_prefix(entry.name, units)
    else:
        text = entry.name[:units]

    if truncated:
        return text + TRUNCATION_MARKER
    if entry.is_dir and length < NAME_LEN:
        return text + b"/"
    return text
