"""An image being edited, with an undo history of every intermediate state."""

from __future__ import annotations

import enum
import logging
import os
from typing import Any, Callable, Optional
from urllib.parse import unquote, urlparse

from PIL import Image, ImageOps

from .exif import ExifExtractor

log = logging.getLogger(__name__)

_THUMBNAIL_SIZE = 256
_FILE_SCHEME = "file://"


class DocumentEvent(enum.Enum):
    """Notifications an :class:`ImageDocument` sends to its subscribers."""

    PATH_CHANGED = "path_changed"
    VISUAL_IMAGE_CHANGED = "visual_image_changed"
    EDITED_CHANGED = "edited_changed"
    RESET_HANDLE = "reset_handle"
    UPDATE_THUMBNAIL = "update_thumbnail"
    THUMBNAIL_CACHED = "thumbnail_cached"
    IMAGE_ADDED = "image_added"


Listener = Callable[[DocumentEvent, Any], None]


def save_image(image: Optional[Image.Image], location: str) -> None:
    """Write ``image`` to ``location``; a missing image writes nothing."""
    if image is not None:
        image.save(location)


def _local_path(url: str) -> str:
    """The file-system path of a path or ``file://`` URL."""
    parsed = urlparse(url)
    if parsed.scheme in ("", "file"):
        return unquote(parsed.path)
    return url


def _writable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.W_OK)


def _thumbnail(image: Image.Image) -> Image.Image:
    width, height = image.size
    scale = min(_THUMBNAIL_SIZE / width, _THUMBNAIL_SIZE / height)
    size = (max(1, round(width * scale)), max(1, round(height * scale)))
    return image.resize(size, Image.Resampling.LANCZOS)


def _copy_path(location: str) -> str:
    """A free path next to ``location`` named ``<name>_copy[_N]<suffix>``."""
    directory, file_name = os.path.split(location)
    suffix = "." + file_name.split(".")[-1]
    base = os.path.join(directory, file_name.replace(suffix, "") + "_copy")
    candidate = base + suffix
    counter = 1
    while os.path.exists(candidate):
        candidate = f"{base}_{counter}{suffix}"
        counter += 1
    return candidate


class ImageDocument:
    """An image opened for editing.

    Every edit pushes a new image on the undo history; the last one is what
    the user sees.
    """

    def __init__(self) -> None:
        self.path = ""
        self.edited = False
        self._undo_images: list[Image.Image] = []
        self._listeners: list[Listener] = []

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Call ``callback(event, value)`` on every notification; returns an unsubscriber."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: DocumentEvent, value: Any = None) -> None:
        for callback in list(self._listeners):
            callback(event, value)

    @property
    def history_size(self) -> int:
        """Number of images in the undo history."""
        return len(self._undo_images)

    def _current(self) -> Image.Image:
        if not self._undo_images:
            raise RuntimeError("no image loaded")
        return self._undo_images[-1]

    def _push(self, image: Image.Image) -> None:
        self.set_edited(True)
        self._undo_images.append(image)
        self._emit(DocumentEvent.VISUAL_IMAGE_CHANGED)

    def set_path(self, url: str) -> None:
        """Open the image at ``url`` (a path or file URL) on top of the history.

        Raises OSError when the file cannot be read as an image.
        """
        location = _local_path(url)
        with Image.open(location) as img:
            img.load()
            image = ImageOps.exif_transpose(img)
            if image is img:
                image = img.copy()
        self.path = url
        self._emit(DocumentEvent.PATH_CHANGED, url)
        self._emit(DocumentEvent.RESET_HANDLE)
        self._undo_images.append(image)
        self.edited = False
        self._emit(DocumentEvent.EDITED_CHANGED)
        self._emit(DocumentEvent.VISUAL_IMAGE_CHANGED)

    def visual_image(self) -> Optional[Image.Image]:
        """The image as currently edited, or None when nothing is loaded."""
        return self._undo_images[-1] if self._undo_images else None

    def set_edited(self, value: bool) -> None:
        self.edited = value
        self._emit(DocumentEvent.EDITED_CHANGED)

    def rotate(self, angle: int) -> None:
        """Rotate clockwise by ``angle`` degrees."""
        image = self._current()
        turns = {90: Image.Transpose.ROTATE_270, 180: Image.Transpose.ROTATE_180,
                 270: Image.Transpose.ROTATE_90}
        normalized = angle % 360
        if normalized == 0:
            rotated = image.copy()
        elif normalized in turns:
            rotated = image.transpose(turns[normalized])
        else:
            rotated = image.rotate(-angle, resample=Image.Resampling.NEAREST, expand=True)
        self._push(rotated)

    def mirror(self, horizontal: bool, vertical: bool) -> None:
        """Mirror left to right, top to bottom, or both."""
        image = self._current()
        if horizontal:
            image = ImageOps.mirror(image)
        if vertical:
            image = ImageOps.flip(image)
        if not (horizontal or vertical):
            image = image.copy()
        self._push(image)

    def crop(self, x: int, y: int, width: int, height: int) -> None:
        """Keep the given rectangle, clamped to the image bounds.

        Raises ValueError when nothing of the rectangle lies inside the image.
        """
        image = self._current()
        if x < 0:
            width += x
            x = 0
        if y < 0:
            height += y
            y = 0
        if image.width < width + x:
            width = image.width - x
        if image.height < height + y:
            height = image.height - y
        if width <= 0 or height <= 0:
            raise ValueError("crop rectangle lies outside the image")
        self._push(image.crop((x, y, x + width, y + height)))

    def undo(self) -> None:
        """Drop the last edit; raises IndexError when there is none."""
        if len(self._undo_images) <= 1:
            raise IndexError("nothing to undo")
        self._undo_images.pop()
        if len(self._undo_images) == 1:
            self.set_edited(False)
        self._emit(DocumentEvent.VISUAL_IMAGE_CHANGED)

    def cancel(self) -> None:
        """Drop every edit, keeping only the first image of the history."""
        del self._undo_images[1:]
        self._emit(DocumentEvent.RESET_HANDLE)
        self.edited = False
        self._emit(DocumentEvent.EDITED_CHANGED)

    def clear_undo_images(self) -> bool:
        """Keep only the first image; False when nothing is loaded."""
        if not self._undo_images:
            return False
        del self._undo_images[1:]
        self._emit(DocumentEvent.VISUAL_IMAGE_CHANGED)
        return True

    def save(self) -> bool:
        """Overwrite the file with the edited image; False if it is not writable."""
        location = _local_path(self.path)
        if not _writable(location):
            return False
        save_image(self._current(), location)
        del self._undo_images[:-1]
        self._emit(DocumentEvent.RESET_HANDLE)
        self._emit(DocumentEvent.UPDATE_THUMBNAIL)
        self.set_edited(False)
        self._emit(DocumentEvent.VISUAL_IMAGE_CHANGED)
        return True

    def save_as(self) -> bool:
        """Write the edited image to a new ``_copy`` file beside the original and open it.

        Returns False when the original is not writable.
        """
        location = _local_path(self.path)
        if not _writable(location):
            return False
        new_path = _copy_path(location)
        image = self._current()
        save_image(image, new_path)
        self._emit(DocumentEvent.THUMBNAIL_CACHED, (_FILE_SCHEME + new_path, _thumbnail(image)))

        try:
            ExifExtractor().set_file_date_time(location, new_path)
        except (OSError, ValueError) as exc:
            log.warning("could not copy capture time to %s: %s", new_path, exc)

        self._emit(DocumentEvent.IMAGE_ADDED, new_path)
        self._emit(DocumentEvent.RESET_HANDLE)
        self.set_edited(False)
        self.set_path(new_path)
        self._emit(DocumentEvent.VISUAL_IMAGE_CHANGED)
        return True