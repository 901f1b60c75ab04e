"""An SQLite store of image files, their capture times and locations."""

from __future__ import annotations

import calendar
import enum
import logging
import os
import shutil
import sqlite3
import struct
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional, Sequence

log = logging.getLogger(__name__)

_DB_NAME = "imageData.sqlite3"
_NULL_STRING = 0xFFFFFFFF
_FILE_SCHEME = "file://"


@dataclass(frozen=True)
class ImageInfo:
    """An image file and the moment it was taken."""

    path: str
    date_time: datetime


class LocationGroup(enum.IntEnum):
    COUNTRY = 0
    STATE = 1
    CITY = 2


class TimeGroup(enum.IntEnum):
    YEAR = 0
    MONTH = 1
    WEEK = 2
    DAY = 3


def _pack_strings(*values: Optional[str]) -> bytes:
    """Serialise strings as length-prefixed UTF-16BE, None as a null marker."""
    out = bytearray()
    for value in values:
        if value is None:
            out += struct.pack(">I", _NULL_STRING)
        else:
            encoded = value.encode("utf-16-be")
            out += struct.pack(">I", len(encoded)) + encoded
    return bytes(out)


def _unpack_strings(data: bytes, count: int) -> list[Optional[str]]:
    """Read ``count`` strings written by :func:`_pack_strings`; missing ones are None."""
    values: list[Optional[str]] = []
    offset = 0
    for _ in range(count):
        if offset + 4 > len(data):
            values.append(None)
            continue
        (length,) = struct.unpack_from(">I", data, offset)
        offset += 4
        if length == _NULL_STRING:
            values.append(None)
            continue
        chunk = data[offset:offset + length]
        offset += length
        values.append(chunk.decode("utf-16-be", "replace"))
    return values


def _iso(value: datetime) -> str:
    text = value.isoformat(timespec="seconds")
    offset = value.utcoffset()
    if offset is not None and offset == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _month_name(month: str) -> str:
    try:
        number = int(month)
    except ValueError:
        return ""
    return calendar.month_name[number] if 1 <= number <= 12 else ""


def _long_date(day: date) -> str:
    return f"{day:%A}, {day.day} {day:%B} {day.year}"


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _to_int(text: Optional[str]) -> int:
    try:
        return int(text or "")
    except ValueError:
        return 0


def default_directory() -> str:
    """The per-user data directory used when none is given."""
    base = os.environ.get("XDG_DATA_HOME") or os.path.join(os.path.expanduser("~"), ".local", "share")
    return os.path.join(base, "photoshelf")


class ImageStorage:
    """Image records kept in one SQLite file, with changes grouped into transactions.

    Writes stay inside an open transaction until :meth:`commit`, which also
    notifies every subscriber.
    """

    def __init__(self, directory: Optional[str] = None) -> None:
        self.directory = directory or default_directory()
        os.makedirs(self.directory, exist_ok=True)
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []
        self._db: Optional[sqlite3.Connection] = sqlite3.connect(
            os.path.join(self.directory, _DB_NAME),
            isolation_level=None,
            check_same_thread=False,
        )
        tables = {row[0] for row in self._db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        if "files" not in tables:
            self._db.execute(
                "CREATE TABLE locations (id INTEGER PRIMARY KEY, country TEXT, state TEXT, city TEXT"
                ", UNIQUE(country, state, city) ON CONFLICT REPLACE)"
            )
            self._db.execute(
                "CREATE TABLE files (url TEXT NOT NULL UNIQUE PRIMARY KEY, location INTEGER,"
                " dateTime STRING NOT NULL, FOREIGN KEY(location) REFERENCES locations(id))"
            )
        self._db.execute("BEGIN")

    def __enter__(self) -> "ImageStorage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._db is None:
            raise RuntimeError("storage is closed")
        return self._db

    def close(self) -> None:
        """Commit pending changes and close the database."""
        with self._lock:
            if self._db is None:
                return
            if self._db.in_transaction:
                self._db.execute("COMMIT")
            self._db.close()
            self._db = None

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call ``callback`` after every commit; returns a function that unsubscribes."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _rows(self, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        try:
            return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            log.warning("query failed: %s (%s)", sql, exc)
            return []

    def add_image(self, info: ImageInfo) -> None:
        """Record an image; an already recorded path is logged and left alone."""
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO files(url, dateTime) VALUES(?, ?)",
                    (info.path, _iso(info.date_time)),
                )
            except sqlite3.Error as exc:
                log.warning("file insert failed for %s: %s", info.path, exc)

    def remove_image(self, file_path: str) -> None:
        """Forget an image and any location no longer used by a file."""
        with self._lock:
            try:
                self._conn.execute("DELETE FROM files WHERE url = ?", (file_path,))
            except sqlite3.Error as exc:
                log.warning("file delete failed for %s: %s", file_path, exc)
            try:
                self._conn.execute(
                    "DELETE FROM locations WHERE id NOT IN "
                    "(SELECT DISTINCT location FROM files WHERE location IS NOT NULL)"
                )
            except sqlite3.Error as exc:
                log.warning("location delete failed: %s", exc)

    def commit(self) -> None:
        """Commit pending changes, start a new transaction and notify subscribers."""
        with self._lock:
            conn = self._conn
            if conn.in_transaction:
                conn.execute("COMMIT")
            conn.execute("BEGIN")
        for callback in list(self._listeners):
            callback()

    def locations(self, group: LocationGroup) -> list[tuple[bytes, str]]:
        """Distinct locations at the given level, as ``(key, display)`` pairs."""
        with self._lock:
            result: list[tuple[bytes, str]] = []
            if group == LocationGroup.COUNTRY:
                for (country,) in self._rows("SELECT DISTINCT country FROM locations"):
                    value = _text(country)
                    result.append((value.encode("utf-8"), value))
            elif group == LocationGroup.STATE:
                for country, state in self._rows("SELECT DISTINCT country, state FROM locations"):
                    display = f"{_text(state)}, {_text(country)}"
                    result.append((_pack_strings(country, state), display))
            elif group == LocationGroup.CITY:
                for country, state, city in self._rows("SELECT DISTINCT country, state, city FROM locations"):
                    if city:
                        display = f"{city}, {_text(state)}, {_text(country)}"
                    else:
                        display = f"{_text(state)}, {_text(country)}"
                    result.append((_pack_strings(country, state, city), display))
            return result

    def _location_query(self, key: bytes, group: LocationGroup) -> tuple[str, tuple]:
        if group == LocationGroup.COUNTRY:
            return (
                "SELECT DISTINCT url FROM files, locations WHERE country = ? AND files.location = locations.id",
                (key.decode("utf-8", "replace"),),
            )
        # A city key also carries the city, but matching is by country and state.
        country, state = _unpack_strings(key, 2)
        return (
            "SELECT DISTINCT url FROM files, locations WHERE country = ? AND state = ?"
            " AND files.location = locations.id",
            (country, state),
        )

    def images_for_location(self, key: bytes, group: LocationGroup) -> list[str]:
        """File URLs of the images at a location key from :meth:`locations`."""
        with self._lock:
            sql, params = self._location_query(key, group)
            return [_FILE_SCHEME + _text(url) for (url,) in self._rows(sql, params)]

    def image_for_location(self, key: bytes, group: LocationGroup) -> Optional[str]:
        """File URL of one image at a location, or None."""
        images = self.images_for_location(key, group)
        return images[0] if images else None

    def time_types(self, group: TimeGroup) -> list[tuple[bytes, str]]:
        """Distinct capture periods at the given level, as ``(key, display)`` pairs."""
        with self._lock:
            result: list[tuple[bytes, str]] = []
            if group == TimeGroup.YEAR:
                for (year,) in self._rows("SELECT DISTINCT strftime('%Y', dateTime) FROM files"):
                    value = _text(year)
                    result.append((value.encode("utf-8"), value))
            elif group == TimeGroup.MONTH:
                rows = self._rows("SELECT DISTINCT strftime('%Y', dateTime), strftime('%m', dateTime) FROM files")
                for year, month in rows:
                    year, month = _text(year), _text(month)
                    display = f"{_month_name(month)}, {year}"
                    result.append((_pack_strings(year, month), display))
            elif group == TimeGroup.WEEK:
                rows = self._rows(
                    "SELECT DISTINCT strftime('%Y', dateTime), strftime('%m', dateTime),"
                    " strftime('%W', dateTime) FROM files"
                )
                for year, month, week in rows:
                    year, month, week = _text(year), _text(month), _text(week)
                    display = f"Week {week}, {_month_name(month)}, {year}"
                    result.append((_pack_strings(year, week), display))
            elif group == TimeGroup.DAY:
                for (day_text,) in self._rows("SELECT DISTINCT date(dateTime) FROM files"):
                    try:
                        day = date.fromisoformat(_text(day_text))
                    except ValueError:
                        result.append((b"", ""))
                        continue
                    result.append((day.isoformat().encode("utf-8"), _long_date(day)))
            else:
                raise ValueError(f"unknown time group: {group!r}")
            return result

    def _time_query(self, key: bytes, group: TimeGroup) -> Optional[tuple[str, tuple]]:
        base = "SELECT DISTINCT url FROM files WHERE "
        if group == TimeGroup.YEAR:
            return base + "strftime('%Y', dateTime) = ?", (key.decode("utf-8", "replace"),)
        if group == TimeGroup.MONTH:
            year, month = _unpack_strings(key, 2)
            return base + "strftime('%Y', dateTime) = ? AND strftime('%m', dateTime) = ?", (year, month)
        if group == TimeGroup.WEEK:
            year, week = _unpack_strings(key, 2)
            return base + "strftime('%Y', dateTime) = ? AND strftime('%W', dateTime) = ?", (year, week)
        if group == TimeGroup.DAY:
            try:
                day = date.fromisoformat(key.decode("utf-8", "replace"))
            except ValueError:
                return None
            return base + "date(dateTime) = ?", (day.isoformat(),)
        raise ValueError(f"unknown time group: {group!r}")

    def images_for_time(self, key: bytes, group: TimeGroup) -> list[str]:
        """File URLs of the images in a period key from :meth:`time_types`."""
        with self._lock:
            query = self._time_query(key, group)
            if query is None:
                return []
            sql, params = query
            return [_FILE_SCHEME + _text(url) for (url,) in self._rows(sql, params)]

    def image_for_time(self, key: bytes, group: TimeGroup) -> Optional[str]:
        """File URL of one image in a period, or None."""
        if not key:
            raise ValueError("time key must not be empty")
        with self._lock:
            query = self._time_query(key, group)
            if query is None:
                return None
            sql, params = query
            rows = self._rows(sql + " LIMIT 1", params)
            return _FILE_SCHEME + _text(rows[0][0]) if rows else None

    def date_for_key(self, key: bytes, group: TimeGroup) -> Optional[date]:
        """A representative date for a period key, or None when it names no valid day."""
        if group == TimeGroup.YEAR:
            return _safe_date(_to_int(key.decode("utf-8", "replace")), 1, 1)
        if group == TimeGroup.MONTH:
            year, month = _unpack_strings(key, 2)
            return _safe_date(_to_int(year), _to_int(month), 1)
        if group == TimeGroup.WEEK:
            year, week = _unpack_strings(key, 2)
            number = _to_int(week)
            return _safe_date(_to_int(year), number // 4, number % 4)
        if group == TimeGroup.DAY:
            try:
                return date.fromisoformat(key.decode("utf-8", "replace"))
            except ValueError:
                return None
        raise ValueError(f"unknown time group: {group!r}")

    def all_images(self, size: int = -1, offset: int = 0) -> list[str]:
        """Paths of all images, newest first; ``size`` of -1 means no limit."""
        with self._lock:
            if size == -1:
                rows = self._rows("SELECT DISTINCT url FROM files ORDER BY dateTime DESC")
            else:
                rows = self._rows(
                    "SELECT DISTINCT url FROM files ORDER BY dateTime DESC LIMIT ? OFFSET ?",
                    (size, offset),
                )
            return [_text(url) for (url,) in rows]

    @staticmethod
    def reset(directory: Optional[str] = None) -> None:
        """Delete the storage directory and everything in it."""
        shutil.rmtree(directory or default_directory(), ignore_errors=True)