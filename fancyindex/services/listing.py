"""Two-pass listing assembly: estimate the document size, then write it once.

``estimate_capacity`` and ``render_listing`` walk the same fragments in the
same order. Both read the per-entry ``display_length`` and ``escape_extra``
that were computed at collection time, so the estimate stays an upper bound
on what the writer produces.
"""

from __future__ import annotations

import errno
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from fancyindex.config import ListingConfig, ReadmeMode
from fancyindex.services import templates as t
from fancyindex.services.errors import BufferOverflowError, ConfigurationWarning, IOFailure
from fancyindex.services.file_catalog import (
    DirectoryEntry,
    collect_entries,
    locate_readme,
    sort_entries,
)
from fancyindex.services.formatting import (
    NAME_LEN,
    format_mtime,
    format_size,
    local_utc_offset,
    render_link_target,
    render_visible_text,
)

logger = logging.getLogger("fancyindex.listing")

SIZE_FIELD_LEN = 20
DATE_FIELD_LEN = len(b" 28-Sep-1970 12:00 ")


@dataclass(frozen=True)
class Listing:
    """A finished listing document, ready to hand to the transport."""

    body: bytes
    capacity: int
    content_type: str = t.CONTENT_TYPE
    warnings: tuple[ConfigurationWarning, ...] = field(default_factory=tuple)


class ListingBuffer:
    """Fixed-size output buffer; writing past ``capacity`` is an error."""

    def __init__(self, capacity: int) -> None:
        try:
            self._data = bytearray(capacity)
        except MemoryError as exc:
            raise IOFailure(errno.ENOMEM, f"cannot allocate {capacity} bytes for listing") from exc
        self.capacity = capacity
        self.pos = 0

    def write(self, chunk: bytes) -> None:
        end = self.pos + len(chunk)
        if end > self.capacity:
            raise BufferOverflowError(
                errno.ENOBUFS,
                f"listing write ends at {end}, past estimated capacity {self.capacity}",
            )
        self._data[self.pos:end] = chunk
        self.pos = end

    def getvalue(self) -> bytes:
        return bytes(self._data[: self.pos])


def entry_capacity(entry: DirectoryEntry) -> int:
    """Worst-case size of the table row written for ``entry``."""

    return (
        len(t.ROW_OPEN) + 1 + len(t.ROW_LINK)
        + len(entry.name) + entry.escape_extra  # escaped href
        + len(t.ROW_TEXT)
        + len(entry.name) + entry.display_length
        + NAME_LEN + len(b"&gt;")
        + len(t.ROW_NAME_CLOSE)
        + SIZE_FIELD_LEN
        + len(t.ROW_SIZE_CLOSE)
        + DATE_FIELD_LEN
        + len(t.ROW_CLOSE) + 1
        + len(t.CRLF)
    )


def readme_capacity(uri: bytes, config: ListingConfig) -> int:
    """Worst-case size of one embedded readme frame."""

    return (
        len(t.CRLF) + 1  # and the '/' between uri and file name
        + len(t.README_OPEN)
        + len(uri) + len(os.fsencode(config.readme))
        + len(t.README_CLOSE)
    )


def _unsupported_readme(config: ListingConfig) -> ConfigurationWarning:
    mode = config.readme_placement.mode
    logger.warning("unsupported readme presentation '%s', readme skipped", mode.value)
    return ConfigurationWarning(f"unsupported readme presentation '{mode.value}'")


def estimate_capacity(
    entries: list[DirectoryEntry],
    uri: bytes,
    config: ListingConfig,
    readme_path: bytes | None = None,
    warnings: list[ConfigurationWarning] | None = None,
) -> int:
    """Return an upper bound, in bytes, of the listing ``render_listing`` writes.

    A readme that cannot be presented adds nothing and appends one
    ``ConfigurationWarning`` to ``warnings``.
    """

    # the request path is written twice: in <title> and in <h1>
    total = t.TEMPLATE_SIZE + 2 * len(uri)

    if readme_path is not None:
        placement = config.readme_placement
        if placement.mode is ReadmeMode.IFRAME:
            total += readme_capacity(uri, config) * (int(placement.top) + int(placement.bottom))
        elif warnings is not None:
            warnings.append(_unsupported_readme(config))

    total += sum(entry_capacity(entry) for entry in entries)
    return total


def _readme_markup(uri: bytes, config: ListingConfig) -> bytes:
    separator = b"" if uri.endswith(b"/") else b"/"
    return (
        t.README_OPEN + uri + separator + os.fsencode(config.readme)
        + t.README_CLOSE + t.CRLF
    )


def _write_row(
    buf: ListingBuffer,
    entry: DirectoryEntry,
    index: int,
    config: ListingConfig,
    gmtoff: int,
) -> None:
    buf.write(t.ROW_OPEN)
    buf.write(t.ROW_CLASSES[index & 1])
    buf.write(t.ROW_LINK)
    buf.write(render_link_target(entry))
    buf.write(t.ROW_TEXT)
    buf.write(render_visible_text(entry))
    buf.write(t.ROW_NAME_CLOSE)
    buf.write(format_size(entry.size, entry.is_dir, config.exact_size))
    buf.write(t.ROW_SIZE_CLOSE)
    buf.write(format_mtime(entry.mtime, gmtoff))
    buf.write(t.ROW_CLOSE)
    buf.write(t.CRLF)


def render_listing(
    entries: list[DirectoryEntry],
    uri: bytes,
    config: ListingConfig,
    *,
    readme_path: bytes | None = None,
) -> Listing:
    """Write the listing for already sorted ``entries`` into one buffer."""

    warnings: list[ConfigurationWarning] = []
    capacity = estimate_capacity(entries, uri, config, readme_path, warnings)
    buf = ListingBuffer(capacity)

    placement = config.readme_placement
    readme = None
    if readme_path is not None and placement.mode is ReadmeMode.IFRAME:
        readme = _readme_markup(uri, config)

    gmtoff = local_utc_offset() if config.use_local_time else 0

    buf.write(t.HEAD1)
    buf.write(uri)
    buf.write(t.HEAD2)

    buf.write(t.BODY1)
    buf.write(uri)
    buf.write(t.BODY2)

    if readme is not None and placement.top:
        buf.write(readme)

    buf.write(t.LIST1)
    for index, entry in enumerate(entries):
        _write_row(buf, entry, index, config, gmtoff)
    buf.write(t.LIST2)

    buf.write(t.BODY3)
    if readme is not None and placement.bottom:
        buf.write(readme)
    buf.write(t.BODY4)

    buf.write(t.FOOT1)

    return Listing(body=buf.getvalue(), capacity=capacity, warnings=tuple(warnings))


def build_listing(
    directory: str | bytes | Path,
    uri: str | bytes,
    config: ListingConfig,
    *,
    utf8: bool = True,
) -> Listing:
    """Collect, sort and render the listing of ``directory``.

    ``uri`` is written verbatim, so callers must pass an HTML-safe path.
    """

    if isinstance(uri, str):
        uri = uri.encode("utf-8")

    entries = sort_entries(collect_entries(directory, utf8=utf8))
    readme_path = locate_readme(directory, config)
    listing = render_listing(entries, uri, config, readme_path=readme_path)
    logger.debug(
        'listed "%s": %d entries, %d of %d bytes',
        os.fsdecode(directory),
        len(entries),
        len(listing.body),
        listing.capacity,
    )
    return listing
