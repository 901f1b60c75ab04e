# photoshelf

Building blocks for a photo gallery that need no GUI toolkit. The package indexes
pictures in SQLite, groups them by capture time or place, reads capture dates and
GPS positions from EXIF metadata, and edits single images with an undo history.

## Modules

- **`photoshelf.kdtree`**: `KDTree(dim)` stores points with arbitrary payloads.
  - `insert(pos, data)` adds a point.
  - `nearest(pos)` returns the closest `Neighbor`, or `None` when the tree is empty.
  - `nearest_range(pos, radius)` returns every `Neighbor` within `radius`, in no particular order.
  - `clear()` empties the tree, and `len(tree)` counts its points.

  A `Neighbor` has `position`, `data`, `distance_sq` and `distance`. A position with the wrong number of coordinates raises `ValueError`.
- **`photoshelf.committimer`**: `CommitTimer(callback, small_interval=0.2, large_interval=10.0)` merges a burst of events into one call.
  - Each `start()` restarts the short timer. The long timer starts with the first call of a burst and is not restarted.
  - Whichever timer expires first stops both and calls `callback` once, on a timer thread.
  - `stop()` cancels both timers without calling back. `is_active()` tells whether a timeout is pending.
- **`photoshelf.exif`**:
  - `ExifExtractor.extract(path)` fills `date_time`, `latitude` and `longitude`. South and west references give negative values. An unreadable file raises `OSError`.
  - `ExifExtractor.set_file_date_time(source, target)` copies the capture time of one image into the EXIF data of another. When the source has no capture time, it uses the source file's creation time (or its modification time).
  - `date_time_from_string(text)` tries a fixed list of date layouts and returns `None` when none matches.
  - `gps_to_degrees(values)` converts a degrees/minutes/seconds triple of rationals to decimal degrees.
- **`photoshelf.fetcher`**: decides what a file is by guessing its MIME type from the file name.
  - `iter_images(folder)` yields image paths under a folder and follows symbolic links.
  - `iter_media(folder)` yields `(path, MimeType)` for images and videos and skips links.
  - Both walks skip hidden entries and visit entries in name order.
  - `classify(path)` returns `MimeType.IMAGE`, `MimeType.VIDEO` or `None`.
- **`photoshelf.storage`**: `ImageStorage(directory=None)` keeps `imageData.sqlite3` in the given directory. Without a directory it uses `default_directory()`, which is `$XDG_DATA_HOME/photoshelf` or `~/.local/share/photoshelf`.
  - Writes (`add_image(ImageInfo(path, date_time))`, `remove_image(path)`) stay in an open transaction until `commit()`. `commit()` also calls every callback registered with `subscribe()`.
  - `locations(LocationGroup...)` and `time_types(TimeGroup...)` return `(key, label)` pairs.
  - Pass those keys to `images_for_location` / `image_for_location`, `images_for_time` / `image_for_time` and `date_for_key`.
  - `all_images(size=-1, offset=0)` lists paths newest first.
  - `ImageStorage.reset(directory)` deletes the storage directory.
  - The storage is a context manager. `close()` commits and closes.
- **`photoshelf.models`**: row-based list models over an `ImageStorage` that reload themselves after each commit. `detach()` stops that.
  - `AllImagesModel`
  - `ImageLocationModel`
  - `ImageTimeModel`
  - `ImageListModel`

  Look values up with `data(row, role)`, where `role` is a `Role`, and count rows with `row_count()`. `ItemType` and `QueryType` describe items and queries. The location and time models start empty until `populate()`, `set_group()` or a commit.
- **`photoshelf.document`**: `ImageDocument` holds one image being edited.
  - `set_path(url)` opens the image and applies its EXIF orientation.
  - `rotate`, `mirror` and `crop` each push a new image on the undo history.
  - `undo()` drops the last edit and raises `IndexError` when there is none. `cancel()` and `clear_undo_images()` drop all edits.
  - `save()` overwrites the file. `save_as()` writes `<name>_copy[_N].<ext>` beside it, copies the capture time and opens the copy. Both return `False` when the original is not writable.
  - `subscribe(callback)` receives `(DocumentEvent, value)` notifications.
  - `save_image(image, location)` writes an image, or nothing when the image is `None`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

```python
from photoshelf.kdtree import KDTree

tree = KDTree(2)
tree.insert((0.0, 0.0), "origin")
tree.insert((5.0, 5.0), "far")
print(tree.nearest((1.0, 1.0)).data)                          # origin
print([n.data for n in tree.nearest_range((0.0, 0.0), 2.0)])  # ['origin']
```

```python
from datetime import datetime
from photoshelf.storage import ImageStorage, ImageInfo, TimeGroup

with ImageStorage("/tmp/photo-index") as storage:
    storage.add_image(ImageInfo("/photos/a.jpg", datetime(2021, 10, 21, 19, 21)))
    storage.commit()
    for key, label in storage.time_types(TimeGroup.YEAR):
        print(label, storage.images_for_time(key, TimeGroup.YEAR))
```

```python
from photoshelf.fetcher import iter_media

for path, kind in iter_media("/photos"):
    print(kind, path)
```

```python
from photoshelf.document import ImageDocument

doc = ImageDocument()
doc.set_path("file:///photos/a.jpg")
doc.rotate(90)
doc.crop(0, 0, 100, 100)
doc.undo()
doc.save_as()               # writes /photos/a_copy.jpg, rotated
```

## What it does not do

- It is a library only. There is no command, window or viewer.
- Nothing watches folders for changes. Scanning happens when `iter_images` or `iter_media` is called, and their results go into the storage only if you add them.
- Video files are recognised, but their duration and size are not read.
- GPS coordinates are not turned into place names, and `add_image` records no location. The location groupings therefore stay empty unless the `locations` table is filled by other means.