"""Tests for directory enumeration, ordering and readme lookup."""

from __future__ import annotations

import errno
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fancyindex.config import ListingConfig
from fancyindex.services.errors import (
    DirectoryAccessError,
    IOFailure,
    NotFound,
    PermissionDenied,
)
from fancyindex.services.file_catalog import (
    collect_entries,
    locate_readme,
    make_entry,
    resolve_path,
    sort_entries,
)


class _FakeDirEntry:
    def __init__(self, name: bytes, path: bytes, result) -> None:
        self.name = name
        self.path = path
        self._result = result

    def stat(self, follow_symlinks: bool = True):
        if isinstance(self._result, BaseException):
            raise self._result
        return self._result


class _FakeScandir:
    """Stand-in for ``os.scandir`` iterators that records ``close`` calls."""

    def __init__(self, items, close_error: OSError | None = None) -> None:
        self._items = iter(items)
        self._close_error = close_error
        self.closed = False

    def __iter__(self):
        return self

    def __next__(self):
        item = next(self._items)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True
        if self._close_error is not None:
            raise self._close_error


class CollectEntriesTests(unittest.TestCase):
    def test_hidden_entries_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "a").mkdir()
            (root / "b.txt").write_bytes(b"x" * 500)
            (root / ".hidden").write_text("secret", encoding="utf-8")
            (root / ".git").mkdir()

            entries = {entry.name: entry for entry in collect_entries(root)}

            self.assertEqual(set(entries), {b"a", b"b.txt"})
            self.assertTrue(entries[b"a"].is_dir)
            self.assertFalse(entries[b"b.txt"].is_dir)
            self.assertEqual(entries[b"b.txt"].size, 500)

    def test_metrics_are_computed_at_collection(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            name = "naïve <x>.txt"
            (Path(tmp) / name).write_text("", encoding="utf-8")

            (entry,) = collect_entries(tmp, utf8=True)
            (byte_entry,) = collect_entries(tmp, utf8=False)

            raw = name.encode("utf-8")
            self.assertEqual(entry.name, raw)
            self.assertEqual(entry.display_length, len(name))
            self.assertEqual(byte_entry.display_length, len(raw))
            # ' ', '<', '>' and the two bytes of 'ï'
            self.assertEqual(entry.escape_extra, 2 * 5)

    def test_broken_symlink_is_listed_as_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            os.symlink(root / "missing", root / "dangling")
            (root / "real").mkdir()
            os.symlink(root / "real", root / "linked")

            entries = {entry.name: entry for entry in collect_entries(root)}

            self.assertFalse(entries[b"dangling"].is_dir)
            self.assertTrue(entries[b"linked"].is_dir)

    def test_missing_directory_is_not_found(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertLogs("fancyindex.catalog", level="ERROR"):
                with self.assertRaises(NotFound) as ctx:
                    collect_entries(Path(tmp) / "nope")
            self.assertEqual(ctx.exception.errno, errno.ENOENT)

    def test_file_instead_of_directory_is_not_found(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "file.txt"
            target.write_text("x", encoding="utf-8")
            with self.assertLogs("fancyindex.catalog", level="ERROR"):
                with self.assertRaises(NotFound):
                    collect_entries(target)

    def test_open_errors_are_mapped(self) -> None:
        cases = (
            (errno.EACCES, PermissionDenied, "ERROR"),
            (errno.EIO, IOFailure, "CRITICAL"),
        )
        for code, error, level in cases:
            with self.subTest(errno=code):
                failure = OSError(code, os.strerror(code))
                with mock.patch("fancyindex.services.file_catalog.os.scandir", side_effect=failure):
                    with self.assertLogs("fancyindex.catalog", level=level):
                        with self.assertRaises(error):
                            collect_entries("/srv/data")

    def test_stat_failure_aborts_and_closes_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            good = os.stat(tmp)
            fake = _FakeScandir([
                _FakeDirEntry(b"ok", b"/srv/ok", good),
                _FakeDirEntry(b"bad", b"/srv/bad", OSError(errno.EIO, "I/O error")),
            ])
            with mock.patch("fancyindex.services.file_catalog.os.scandir", return_value=fake):
                with self.assertLogs("fancyindex.catalog", level="CRITICAL"):
                    with self.assertRaises(IOFailure):
                        collect_entries("/srv")
            self.assertTrue(fake.closed)

    def test_enumeration_failure_closes_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            good = os.stat(tmp)
            fake = _FakeScandir([
                _FakeDirEntry(b"ok", b"/srv/ok", good),
                OSError(errno.EIO, "I/O error"),
            ])
            with mock.patch("fancyindex.services.file_catalog.os.scandir", return_value=fake):
                with self.assertLogs("fancyindex.catalog", level="CRITICAL"):
                    with self.assertRaises(IOFailure):
                        collect_entries("/srv")
            self.assertTrue(fake.closed)

    def test_close_failure_is_logged_but_listing_stands(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            good = os.stat(tmp)
            fake = _FakeScandir(
                [_FakeDirEntry(b"ok", b"/srv/ok", good)],
                close_error=OSError(errno.EBADF, "Bad file descriptor"),
            )
            with mock.patch("fancyindex.services.file_catalog.os.scandir", return_value=fake):
                with self.assertLogs("fancyindex.catalog", level="CRITICAL"):
                    entries = collect_entries("/srv")
            self.assertEqual([entry.name for entry in entries], [b"ok"])


class SortEntriesTests(unittest.TestCase):
    def _entries(self):
        specs = [
            (b"zeta.txt", False),
            (b"B", True),
            ("é".encode("utf-8"), False),
            (b"a", True),
            (b"Zulu", False),
            (b"a.txt", False),
        ]
        return [make_entry(name, is_dir=is_dir, mtime=0, size=0, utf8=True) for name, is_dir in specs]

    def test_directories_first_then_byte_order(self) -> None:
        ordered = [entry.name for entry in sort_entries(self._entries())]
        self.assertEqual(
            ordered,
            [b"B", b"a", b"Zulu", b"a.txt", b"zeta.txt", "é".encode("utf-8")],
        )

    def test_sort_is_idempotent(self) -> None:
        once = sort_entries(self._entries())
        self.assertEqual(sort_entries(once), once)

    def test_trivial_inputs(self) -> None:
        self.assertEqual(sort_entries([]), [])
        single = self._entries()[:1]
        self.assertEqual(sort_entries(single), single)


class LocateReadmeTests(unittest.TestCase):
    def test_readme_lookup(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "README.txt").write_text("hello", encoding="utf-8")

            self.assertIsNone(locate_readme(tmp, ListingConfig()))
            self.assertIsNone(locate_readme(tmp, ListingConfig(readme="MISSING.txt")))
            self.assertEqual(
                locate_readme(tmp, ListingConfig(readme="README.txt")),
                os.path.join(os.fsencode(tmp), b"README.txt"),
            )


class ResolvePathTests(unittest.TestCase):
    def test_paths_stay_inside_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "docs").mkdir()
            self.assertEqual(resolve_path(root, "/docs/"), (root / "docs").resolve())
            self.assertEqual(resolve_path(root, ""), root.resolve())
            with self.assertRaises(DirectoryAccessError):
                resolve_path(root, "../..")


if __name__ == "__main__":
    unittest.main()
