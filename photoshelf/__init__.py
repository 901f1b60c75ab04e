"""Photo indexing, time and location grouping, EXIF reading and image editing with undo."""

__version__ = "0.1.0"

__all__ = [
    "committimer",
    "document",
    "exif",
    "fetcher",
    "kdtree",
    "models",
    "storage",
]