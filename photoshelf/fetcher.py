"""Walking folders for image and video files."""

from __future__ import annotations

import enum
import mimetypes
import os
from typing import Iterator, Optional


class MimeType(enum.Enum):
    IMAGE = "image"
    VIDEO = "video"


def _mime_name(path: str) -> str:
    name, _ = mimetypes.guess_type(path, strict=False)
    return name or ""


def classify(path: str) -> Optional[MimeType]:
    """Return whether ``path`` names an image or a video, or None."""
    name = _mime_name(path)
    if name.startswith("image/"):
        return MimeType.IMAGE
    if name.startswith("video/"):
        return MimeType.VIDEO
    return None


def _walk(folder: str, follow_links: bool) -> Iterator[os.DirEntry]:
    try:
        entries = sorted(os.scandir(folder), key=lambda e: e.name)
    except OSError:
        return
    for entry in entries:
        if entry.name.startswith("."):
            continue
        is_link = entry.is_symlink()
        if is_link and not follow_links:
            continue
        yield entry
        if not is_link and entry.is_dir(follow_symlinks=False):
            yield from _walk(entry.path, follow_links)


def iter_images(folder: str) -> Iterator[str]:
    """Yield paths of image files anywhere under ``folder``."""
    for entry in _walk(folder, follow_links=True):
        if entry.is_dir():
            continue
        if _mime_name(entry.path).startswith("image/"):
            yield entry.path


def iter_media(folder: str) -> Iterator[tuple[str, MimeType]]:
    """Yield ``(path, kind)`` for image and video files under ``folder``, skipping links."""
    for entry in _walk(folder, follow_links=False):
        if entry.is_dir(follow_symlinks=False):
            continue
        kind = classify(entry.path)
        if kind is not None:
            yield entry.path, kind