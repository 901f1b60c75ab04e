import os
import sqlite3
from datetime import date, datetime

import pytest

from photoshelf.models import (
    AllImagesModel,
    ImageListModel,
    ImageLocationModel,
    ImageTimeModel,
    ItemType,
    QueryType,
    Role,
)
from photoshelf.storage import ImageInfo, ImageStorage, LocationGroup, TimeGroup


@pytest.fixture
def storage(tmp_path):
    store = ImageStorage(str(tmp_path / "db"))
    yield store
    store.close()


def _fill(store):
    store.add_image(ImageInfo("/pics/old.jpg", datetime(2019, 3, 5, 8, 0, 0)))
    store.add_image(ImageInfo("/pics/new.jpg", datetime(2020, 6, 7, 9, 0, 0)))
    store.commit()


@pytest.fixture
def located_storage(tmp_path):
    directory = tmp_path / "loc"
    os.makedirs(directory)
    conn = sqlite3.connect(str(directory / "imageData.sqlite3"))
    conn.execute(
        "CREATE TABLE locations (id INTEGER PRIMARY KEY, country TEXT, state TEXT, city TEXT"
        ", UNIQUE(country, state, city) ON CONFLICT REPLACE)"
    )
    conn.execute(
        "CREATE TABLE files (url TEXT NOT NULL UNIQUE PRIMARY KEY, location INTEGER,"
        " dateTime STRING NOT NULL, FOREIGN KEY(location) REFERENCES locations(id))"
    )
    conn.execute("INSERT INTO locations VALUES (1, 'United Kingdom', 'England', 'Birmingham')")
    conn.execute("INSERT INTO files VALUES ('/pics/a.jpg', 1, '2020-01-02T03:04:05')")
    conn.execute("INSERT INTO files VALUES ('/pics/b.jpg', 1, '2020-01-02T04:04:05')")
    conn.commit()
    conn.close()
    store = ImageStorage(str(directory))
    yield store
    store.close()


def test_all_images_populates_from_constructor(storage):
    _fill(storage)
    model = AllImagesModel(storage)
    assert model.row_count() == 2
    assert model.data(0, Role.FILE_PATH) == "/pics/new.jpg"
    assert model.data(1, Role.DISPLAY) == "old.jpg"


def test_all_images_follows_commits(storage):
    model = AllImagesModel(storage)
    assert len(model) == 0
    _fill(storage)
    assert [model.data(i, Role.FILE_PATH) for i in range(len(model))] == ["/pics/new.jpg", "/pics/old.jpg"]


def test_all_images_invalid_row_and_role(storage):
    _fill(storage)
    model = AllImagesModel(storage)
    assert model.data(5) is None
    assert model.data(0, Role.DATE) is None
    assert model.role_names()[Role.FILE_PATH] == "modelData"


def test_detach_stops_updates(storage):
    model = AllImagesModel(storage)
    model.detach()
    _fill(storage)
    assert model.row_count() == 0


def test_time_model_year_group(storage):
    _fill(storage)
    model = ImageTimeModel(storage)
    model.set_group(TimeGroup.YEAR)
    displays = sorted(model.data(i) for i in range(model.row_count()))
    assert displays == ["2019", "2020"]
    row = [model.data(i) for i in range(model.row_count())].index("2020")
    assert model.data(row, Role.FILES) == ["file:///pics/new.jpg"]
    assert model.data(row, Role.FILE_COUNT) == 1
    assert model.data(row, Role.IMAGE_URL) == "file:///pics/new.jpg"
    assert model.data(row, Role.DATE) == date(2020, 1, 1)
    assert model.data(row, Role.ITEM_TYPE) == ItemType.ALBUM


def test_time_model_default_group_and_refresh(storage):
    model = ImageTimeModel(storage)
    assert model.group == TimeGroup.DAY
    assert model.row_count() == 0
    _fill(storage)
    assert model.row_count() == 2
    assert sorted(model.data(i, Role.DATE) for i in range(2)) == [date(2019, 3, 5), date(2020, 6, 7)]


def test_location_model_country(located_storage):
    model = ImageLocationModel(located_storage)
    assert model.group == LocationGroup.CITY
    assert model.row_count() == 0
    model.set_group(LocationGroup.COUNTRY)
    assert model.row_count() == 1
    assert model.data(0) == "United Kingdom"
    assert sorted(model.data(0, Role.FILES)) == ["file:///pics/a.jpg", "file:///pics/b.jpg"]
    assert model.data(0, Role.FILE_COUNT) == 2
    assert model.data(0, Role.ITEM_TYPE) == ItemType.ALBUM


def test_location_model_city_display(located_storage):
    model = ImageLocationModel(located_storage)
    model.populate()
    assert model.data(0) == "Birmingham, England, United Kingdom"
    assert model.data(0, Role.IMAGE_URL) in model.data(0, Role.FILES)


def test_list_model_by_time(storage):
    _fill(storage)
    model = ImageListModel(storage)
    assert model.query_for_index(0) == b""
    model.set_time_group(TimeGroup.YEAR)
    assert model.query_type == QueryType.TIME
    keys = [model.query_for_index(i) for i in range(2)]
    model.set_query(b"2019")
    assert b"2019" in keys
    assert model.row_count() == 1
    assert model.data(0) == "file:///pics/old.jpg"
    assert model.data(0, Role.IMAGE_URL) == "file:///pics/old.jpg"
    assert model.data(0, Role.ITEM_TYPE) == ItemType.IMAGE
    assert model.data(0, Role.MIME_TYPE) == "image/jpeg"


def test_list_model_by_location(located_storage):
    model = ImageListModel(located_storage)
    model.set_location_group(LocationGroup.STATE)
    assert model.query_type == QueryType.LOCATION
    model.set_query(model.query_for_index(0))
    assert sorted(model.data(i) for i in range(model.row_count())) == [
        "file:///pics/a.jpg",
        "file:///pics/b.jpg",
    ]


def test_list_model_index_out_of_range(storage):
    model = ImageListModel(storage)
    model.set_time_group(TimeGroup.YEAR)
    with pytest.raises(IndexError):
        model.query_for_index(3)
    assert model.data(0) is None