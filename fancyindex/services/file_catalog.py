from __future__ import annotations

import errno
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path

from fancyindex.config import ListingConfig
from fancyindex.services.errors import (
    DirectoryAccessError,
    IOFailure,
    NotFound,
    PermissionDenied,
)
from fancyindex.services.formatting import count_html_escapes, utf8_length

logger = logging.getLogger("fancyindex.catalog")

HIDDEN_MARKER = b"."

_NOT_FOUND_ERRNOS = {errno.ENOENT, errno.ENOTDIR, errno.ENAMETOOLONG}


@dataclass(frozen=True)
class DirectoryEntry:
    """One listed child plus the metrics shared by the estimator and the writer."""

    name: bytes
    display_length: int
    escape_extra: int
    is_dir: bool
    mtime: int
    size: int


def make_entry(name: bytes, *, is_dir: bool, mtime: int, size: int, utf8: bool) -> DirectoryEntry:
    """Build a ``DirectoryEntry``, computing its display and escape metrics once."""

    return DirectoryEntry(
        name=name,
        display_length=utf8_length(name) if utf8 else len(name),
        escape_extra=2 * count_html_escapes(name),
        is_dir=is_dir,
        mtime=mtime,
        size=size,
    )


def _open_error(path: bytes, exc: OSError) -> OSError:
    shown = os.fsdecode(path)
    if exc.errno in _NOT_FOUND_ERRNOS:
        logger.error('opendir "%s" failed: %s', shown, exc.strerror)
        return NotFound(exc.errno, exc.strerror, shown)
    if exc.errno == errno.EACCES:
        logger.error('opendir "%s" failed: %s', shown, exc.strerror)
        return PermissionDenied(exc.errno, exc.strerror, shown)
    logger.critical('opendir "%s" failed: %s', shown, exc.strerror)
    return IOFailure(exc.errno, exc.strerror, shown)


def _stat_entry(dirent: os.DirEntry) -> os.stat_result:
    try:
        return dirent.stat()
    except FileNotFoundError:
        # vanished target, most likely a dangling symlink: list the link itself
        pass
    except OSError as exc:
        logger.critical('stat "%s" failed: %s', os.fsdecode(dirent.path), exc.strerror)
        raise IOFailure(exc.errno, exc.strerror, os.fsdecode(dirent.path)) from exc

    try:
        return dirent.stat(follow_symlinks=False)
    except OSError as exc:
        logger.critical('lstat "%s" failed: %s', os.fsdecode(dirent.path), exc.strerror)
        raise IOFailure(exc.errno, exc.strerror, os.fsdecode(dirent.path)) from exc


def _close_dir(iterator, path: bytes) -> None:
    try:
        iterator.close()
    except OSError as exc:
        logger.critical('closedir "%s" failed: %s', os.fsdecode(path), exc.strerror)


def collect_entries(directory: str | bytes | Path, *, utf8: bool = True) -> list[DirectoryEntry]:
    """Return the visible children of ``directory`` in enumeration order.

    Names starting with ``HIDDEN_MARKER`` are skipped. Raises ``NotFound``,
    ``PermissionDenied`` or ``IOFailure`` depending on why the directory could
    not be opened; any later enumeration or stat failure is an ``IOFailure``.
    """

    path = os.fsencode(directory)
    logger.debug('listing "%s"', os.fsdecode(path))

    try:
        iterator = os.scandir(path)
    except OSError as exc:
        raise _open_error(path, exc) from exc

    entries: list[DirectoryEntry] = []
    try:
        while True:
            try:
                dirent = next(iterator)
            except StopIteration:
                break
            except OSError as exc:
                logger.critical('readdir "%s" failed: %s', os.fsdecode(path), exc.strerror)
                raise IOFailure(exc.errno, exc.strerror, os.fsdecode(path)) from exc

            name = dirent.name
            logger.debug('listing entry "%s"', os.fsdecode(name))
            if name.startswith(HIDDEN_MARKER):
                continue

            info = _stat_entry(dirent)
            entries.append(
                make_entry(
                    name,
                    is_dir=stat.S_ISDIR(info.st_mode),
                    mtime=int(info.st_mtime),
                    size=info.st_size,
                    utf8=utf8,
                )
            )
    finally:
        _close_dir(iterator, path)

    return entries


def sort_entries(entries: list[DirectoryEntry]) -> list[DirectoryEntry]:
    """Order entries directories first, then by raw name bytes."""

    if len(entries) < 2:
        return list(entries)
    return sorted(entries, key=lambda entry: (not entry.is_dir, entry.name))


def locate_readme(directory: str | bytes | Path, config: ListingConfig) -> bytes | None:
    """Return the readme path inside ``directory`` if configured and present."""

    if not config.readme:
        return None

    path = os.path.join(os.fsencode(directory), os.fsencode(config.readme))
    try:
        os.stat(path)
    except OSError:
        return None
    return path


def _ensure_within_base(base: Path, target: Path) -> Path:
    base = base.resolve()
    target = target.resolve()
    if base == target:
        return target
    if base in target.parents:
        return target
    raise DirectoryAccessError(errno.ENOENT, "Path escapes document root", str(target))


def resolve_path(base: Path, relative_path: str = "") -> Path:
    """Return the absolute path for ``relative_path`` inside the document root."""

    target = (base / relative_path.lstrip("/")).resolve()
    return _ensure_within_base(base, target)
