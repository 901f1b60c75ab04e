"""List models presenting the image store to a user interface."""

from __future__ import annotations

import enum
import mimetypes
from typing import Any, Callable, Optional

from .storage import ImageStorage, LocationGroup, TimeGroup

_DEFAULT_MIME = "application/octet-stream"


class Role(enum.IntEnum):
    """Kinds of data a model row can answer for."""

    DISPLAY = 0
    FILE_PATH = 257
    FILES = 258
    FILE_COUNT = 259
    IMAGE_URL = 260
    DATE = 261
    MIME_TYPE = 262
    ITEM_TYPE = 263


class ItemType(enum.IntEnum):
    ALBUM = 0
    FOLDER = 1
    IMAGE = 2


class QueryType(enum.IntEnum):
    LOCATION = 0
    TIME = 1


def _file_name(path: str) -> str:
    return path[path.rfind("/") + 1:]


def _mime_type(path: str) -> str:
    name, _ = mimetypes.guess_type(path, strict=False)
    return name or _DEFAULT_MIME


class _StorageModel:
    """Common base: keeps a storage and reacts to its commits."""

    def __init__(self, storage: ImageStorage) -> None:
        self.storage = storage
        self._unsubscribe: Callable[[], None] = storage.subscribe(self._on_storage_modified)

    def _on_storage_modified(self) -> None:
        raise NotImplementedError

    def detach(self) -> None:
        """Stop following changes to the storage."""
        self._unsubscribe()

    def __len__(self) -> int:
        return self.row_count()

    def row_count(self) -> int:
        raise NotImplementedError


class AllImagesModel(_StorageModel):
    """Every stored image, newest first."""

    def __init__(self, storage: ImageStorage) -> None:
        super().__init__(storage)
        self._images: list[str] = storage.all_images()

    def _on_storage_modified(self) -> None:
        self.populate()

    def populate(self) -> None:
        """Reload the image list from the storage."""
        self._images = self.storage.all_images()

    def role_names(self) -> dict[Role, str]:
        return {Role.DISPLAY: "display", Role.FILE_PATH: "modelData"}

    def data(self, row: int, role: Role = Role.DISPLAY) -> Any:
        if not 0 <= row < len(self._images):
            return None
        path = self._images[row]
        if role == Role.DISPLAY:
            return _file_name(path)
        if role == Role.FILE_PATH:
            return path
        return None

    def row_count(self) -> int:
        return len(self._images)


class ImageLocationModel(_StorageModel):
    """Albums of images grouped by place."""

    def __init__(self, storage: ImageStorage) -> None:
        super().__init__(storage)
        self.group = LocationGroup.CITY
        self._locations: list[tuple[bytes, str]] = []

    def _on_storage_modified(self) -> None:
        self.populate()

    def populate(self) -> None:
        """Reload the locations of the current group."""
        self._locations = self.storage.locations(self.group)

    def role_names(self) -> dict[Role, str]:
        return {
            Role.DISPLAY: "display",
            Role.FILES: "files",
            Role.FILE_COUNT: "fileCount",
            Role.IMAGE_URL: "imageurl",
            Role.ITEM_TYPE: "itemType",
        }

    def data(self, row: int, role: Role = Role.DISPLAY) -> Any:
        if not 0 <= row < len(self._locations):
            return None
        key, display = self._locations[row]
        if role == Role.DISPLAY:
            return display
        if role == Role.FILES:
            return self.storage.images_for_location(key, self.group)
        if role == Role.FILE_COUNT:
            return len(self.storage.images_for_location(key, self.group))
        if role == Role.IMAGE_URL:
            return self.storage.image_for_location(key, self.group)
        if role == Role.ITEM_TYPE:
            return ItemType.ALBUM
        return None

    def row_count(self) -> int:
        return len(self._locations)

    def set_group(self, group: LocationGroup) -> None:
        """Switch grouping level and reload."""
        self.group = LocationGroup(group)
        self.populate()


class ImageTimeModel(_StorageModel):
    """Albums of images grouped by capture period."""

    def __init__(self, storage: ImageStorage) -> None:
        super().__init__(storage)
        self.group = TimeGroup.DAY
        self._times: list[tuple[bytes, str]] = []

    def _on_storage_modified(self) -> None:
        self.populate()

    def populate(self) -> None:
        """Reload the periods of the current group."""
        self._times = self.storage.time_types(self.group)

    def role_names(self) -> dict[Role, str]:
        return {
            Role.DISPLAY: "display",
            Role.FILES: "files",
            Role.FILE_COUNT: "fileCount",
            Role.IMAGE_URL: "imageurl",
            Role.DATE: "date",
            Role.ITEM_TYPE: "itemType",
        }

    def data(self, row: int, role: Role = Role.DISPLAY) -> Any:
        if not 0 <= row < len(self._times):
            return None
        key, display = self._times[row]
        if role == Role.DISPLAY:
            return display
        if role == Role.FILES:
            return self.storage.images_for_time(key, self.group)
        if role == Role.FILE_COUNT:
            return len(self.storage.images_for_time(key, self.group))
        if role == Role.IMAGE_URL:
            return self.storage.image_for_time(key, self.group)
        if role == Role.DATE:
            return self.storage.date_for_key(key, self.group)
        if role == Role.ITEM_TYPE:
            return ItemType.ALBUM
        return None

    def row_count(self) -> int:
        return len(self._times)

    def set_group(self, group: TimeGroup) -> None:
        """Switch grouping level and reload."""
        self.group = TimeGroup(group)
        self.populate()


class ImageListModel(_StorageModel):
    """The images of one location or time album, chosen by a query key."""

    def __init__(self, storage: ImageStorage) -> None:
        super().__init__(storage)
        self._images: list[str] = []
        self.location_group: Optional[LocationGroup] = None
        self.time_group: Optional[TimeGroup] = None
        self.query_type: Optional[QueryType] = None
        self.query: bytes = b""
        self._locations: list[tuple[bytes, str]] = []
        self._times: list[tuple[bytes, str]] = []

    def _on_storage_modified(self) -> None:
        self.reset_model()

    def role_names(self) -> dict[Role, str]:
        return {
            Role.DISPLAY: "display",
            Role.IMAGE_URL: "imageurl",
            Role.ITEM_TYPE: "itemType",
            Role.MIME_TYPE: "mimeType",
        }

    def data(self, row: int, role: Role = Role.DISPLAY) -> Any:
        if not 0 <= row < len(self._images):
            return None
        url = self._images[row]
        if role in (Role.DISPLAY, Role.IMAGE_URL):
            return url
        if role == Role.ITEM_TYPE:
            return ItemType.IMAGE
        if role == Role.MIME_TYPE:
            return _mime_type(url)
        return None

    def row_count(self) -> int:
        return len(self._images)

    def set_location_group(self, group: Optional[LocationGroup]) -> None:
        """Query by location at ``group``; None leaves the query type alone."""
        self.location_group = None if group is None else LocationGroup(group)
        if self.location_group is not None:
            self._locations = self.storage.locations(self.location_group)
            self.query_type = QueryType.LOCATION

    def set_time_group(self, group: Optional[TimeGroup]) -> None:
        """Query by capture period at ``group``; None leaves the query type alone."""
        self.time_group = None if group is None else TimeGroup(group)
        if self.time_group is not None:
            self._times = self.storage.time_types(self.time_group)
            self.query_type = QueryType.TIME

    def set_query(self, query: bytes) -> None:
        """Select the album key and reload its images."""
        self.query = query
        self.reset_model()

    def reset_model(self) -> None:
        """Reload the images matching the current query."""
        if self.query_type == QueryType.LOCATION and self.location_group is not None:
            self._images = self.storage.images_for_location(self.query, self.location_group)
        elif self.query_type == QueryType.TIME and self.time_group is not None:
            self._images = self.storage.images_for_time(self.query, self.time_group)

    def query_for_index(self, index: int) -> bytes:
        """The album key at ``index`` for the current query type."""
        if self.query_type == QueryType.LOCATION:
            return self._locations[index][0]
        if self.query_type == QueryType.TIME:
            return self._times[index][0]
        return b""