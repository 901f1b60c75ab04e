[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "photoshelf"
version = "0.1.0"
description = "Photo collection indexing: EXIF extraction, folder scanning, time and location grouping, and simple image editing with undo."
requires-python = ">=3.10"
keywords = ["photos", "gallery", "exif", "kd-tree", "image-viewer", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Viewers",
]
dependencies = [
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["photoshelf"]

[tool.pytest.ini_options]
addopts = "-ra"
