"""Reading capture dates and GPS positions from image metadata."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from PIL import Image

log = logging.getLogger(__name__)

_EXIF_IFD = 0x8769
_GPS_IFD = 0x8825
_DATE_TIME_ORIGINAL = 36867
_IMAGE_DATE_TIME = 306
_GPS_LATITUDE_REF = 1
_GPS_LATITUDE = 2
_GPS_LONGITUDE_REF = 3
_GPS_LONGITUDE = 4

_WRITE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# (strptime format, interpret as UTC); tried in order.
_FORMATS: tuple[tuple[str, bool], ...] = (
    ("%Y-%m-%dT%H:%M:%S", False),
    ("%Y-%m-%d", True),
    ("%d-%m-%Y", True),
    ("%Y-%m", True),
    ("%m-%Y", True),
    ("%Y.%m.%d", True),
    ("%d.%m.%Y", True),
    ("%d %B %Y", True),
    ("%m.%Y", True),
    ("%Y.%m", True),
    ("%Y", True),
)

_LATE_FORMATS: tuple[tuple[str, bool], ...] = (
    ("%A %d %b %Y %I:%M:%S %p", False),
    ("%Y:%m:%d %H:%M:%S", False),
)

_TWO_DIGIT_YEAR = re.compile(r"\d{2}")


def _try(text: str, formats: Iterable[tuple[str, bool]]) -> Optional[datetime]:
    for fmt, utc in formats:
        try:
            value = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return value.replace(tzinfo=timezone.utc) if utc else value
    return None


def date_time_from_string(text: str) -> Optional[datetime]:
    """Parse a metadata date string, trying the known layouts in turn.

    Returns None when no layout matches. Layouts carrying a time of day give
    naive local times; date-only layouts give UTC.
    """
    text = text.strip().strip("\x00").strip()
    value = _try(text, _FORMATS)
    if value is not None:
        return value
    if _TWO_DIGIT_YEAR.fullmatch(text):
        return datetime(1900 + int(text), 1, 1, tzinfo=timezone.utc)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    value = _try(text, _LATE_FORMATS)
    if value is None:
        log.warning("Could not determine correct datetime format from: %r", text)
    return value


def _rational(value: Any) -> tuple[float, float]:
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return float(value[0]), float(value[1])
    return float(value.numerator), float(value.denominator)


def gps_to_degrees(values: Iterable[Any]) -> float:
    """Convert a degrees/minutes/seconds triple of rationals to decimal degrees.

    Each item is a ``(numerator, denominator)`` pair or an object with
    ``numerator`` and ``denominator``. Anything but three items gives 0.0.
    """
    parts = list(values)
    if len(parts) != 3:
        return 0.0

    n, d = _rational(parts[0])
    if d == 0:
        return 0.0
    degrees = n / d

    n, d = _rational(parts[1])
    if d == 0:
        return degrees
    minutes = n / d
    if minutes != -1.0:
        degrees += minutes / 60.0

    n, d = _rational(parts[2])
    if d == 0:
        return degrees
    seconds = n / d
    if seconds != -1.0:
        degrees += seconds / 3600.0
    return degrees


def _read_exif(path: str) -> Image.Exif:
    with Image.open(path) as img:
        try:
            return img.getexif()
        except (SyntaxError, ValueError, KeyError) as exc:
            raise OSError(f"cannot read metadata of {path}: {exc}") from exc


def _capture_time(exif: Image.Exif) -> Optional[datetime]:
    value = exif.get_ifd(_EXIF_IFD).get(_DATE_TIME_ORIGINAL)
    result = date_time_from_string(value) if isinstance(value, str) else None
    if result is None:
        value = exif.get(_IMAGE_DATE_TIME)
        if isinstance(value, str):
            result = date_time_from_string(value)
    return result


def _ref_starts_with(value: Any, letter: str) -> bool:
    if isinstance(value, bytes):
        value = value.decode("ascii", "replace")
    return isinstance(value, str) and value.startswith(letter)


def _birth_time(path: str) -> datetime:
    st = os.stat(path)
    stamp = getattr(st, "st_birthtime", None) or st.st_mtime
    return datetime.fromtimestamp(stamp)


class ExifExtractor:
    """Capture time and GPS position of an image file."""

    def __init__(self) -> None:
        self.latitude = 0.0
        self.longitude = 0.0
        self.date_time: Optional[datetime] = None

    def extract(self, file_path: str) -> None:
        """Read metadata from ``file_path``; raises OSError if it is unreadable."""
        self.latitude = 0.0
        self.longitude = 0.0
        self.date_time = None

        exif = _read_exif(file_path)
        self.date_time = _capture_time(exif)

        gps = exif.get_ifd(_GPS_IFD)
        if _GPS_LATITUDE in gps:
            self.latitude = gps_to_degrees(gps[_GPS_LATITUDE])
        if _GPS_LONGITUDE in gps:
            self.longitude = gps_to_degrees(gps[_GPS_LONGITUDE])
        if _ref_starts_with(gps.get(_GPS_LATITUDE_REF), "S"):
            self.latitude = -self.latitude
        if _ref_starts_with(gps.get(_GPS_LONGITUDE_REF), "W"):
            self.longitude = -self.longitude

    def set_file_date_time(self, location_path: str, new_file_path: str) -> None:
        """Copy the capture time of ``location_path`` into ``new_file_path``.

        Falls back to the source file's creation time when it has no capture
        time. Raises OSError when either file cannot be read or written.
        """
        stamp = _capture_time(_read_exif(location_path))
        if stamp is None:
            stamp = _birth_time(location_path)
        text = stamp.strftime(_WRITE_FORMAT)

        with Image.open(new_file_path) as img:
            img.load()
            fmt = img.format
            exif = img.getexif()
            image = img.copy()
        ifd = dict(exif.get_ifd(_EXIF_IFD))
        ifd[_DATE_TIME_ORIGINAL] = text
        exif[_EXIF_IFD] = ifd
        image.save(new_file_path, format=fmt, exif=exif)