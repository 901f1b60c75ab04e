import os

import pytest
from PIL import Image

from photoshelf.document import DocumentEvent, ImageDocument, save_image

RED = (255, 0, 0)
BLUE = (0, 0, 255)


@pytest.fixture
def two_pixel(tmp_path):
    path = tmp_path / "photo.png"
    img = Image.new("RGB", (2, 1))
    img.putpixel((0, 0), RED)
    img.putpixel((1, 0), BLUE)
    img.save(path)
    return str(path)


@pytest.fixture
def big(tmp_path):
    path = tmp_path / "big.png"
    Image.new("RGB", (4, 3), RED).save(path)
    return str(path)


def _open(path):
    doc = ImageDocument()
    doc.set_path(path)
    return doc


def test_set_path_loads_image(two_pixel):
    doc = _open(two_pixel)
    assert doc.path == two_pixel
    assert doc.visual_image().size == (2, 1)
    assert doc.edited is False


def test_set_path_accepts_file_url(two_pixel):
    doc = _open("file://" + two_pixel)
    assert doc.visual_image().getpixel((1, 0)) == BLUE


def test_set_path_missing_file_raises(tmp_path):
    doc = ImageDocument()
    with pytest.raises(OSError):
        doc.set_path(str(tmp_path / "none.png"))
    assert doc.visual_image() is None


def test_rotate_clockwise(two_pixel):
    doc = _open(two_pixel)
    doc.rotate(90)
    image = doc.visual_image()
    assert image.size == (1, 2)
    assert image.getpixel((0, 0)) == RED
    assert image.getpixel((0, 1)) == BLUE
    assert doc.edited is True


def test_rotate_full_turn_keeps_pixels(two_pixel):
    doc = _open(two_pixel)
    for _ in range(4):
        doc.rotate(90)
    assert list(doc.visual_image().getdata()) == [RED, BLUE]


def test_mirror_horizontal(two_pixel):
    doc = _open(two_pixel)
    doc.mirror(True, False)
    assert list(doc.visual_image().getdata()) == [BLUE, RED]


def test_edit_without_image_raises():
    with pytest.raises(RuntimeError):
        ImageDocument().rotate(90)


def test_crop_clamps_to_bounds(big):
    doc = _open(big)
    doc.crop(-1, -1, 10, 10)
    assert doc.visual_image().size == (4, 3)
    doc.crop(1, 1, 2, 1)
    assert doc.visual_image().size == (2, 1)


def test_crop_outside_raises(big):
    doc = _open(big)
    with pytest.raises(ValueError):
        doc.crop(5, 0, 2, 2)


def test_undo_restores_previous(two_pixel):
    doc = _open(two_pixel)
    doc.mirror(True, False)
    doc.undo()
    assert list(doc.visual_image().getdata()) == [RED, BLUE]
    assert doc.edited is False


def test_undo_without_edits_raises(two_pixel):
    doc = _open(two_pixel)
    with pytest.raises(IndexError):
        doc.undo()


def test_cancel_drops_all_edits(two_pixel):
    doc = _open(two_pixel)
    doc.rotate(90)
    doc.mirror(False, True)
    doc.cancel()
    assert doc.history_size == 1
    assert doc.visual_image().size == (2, 1)
    assert doc.edited is False


def test_clear_undo_images(two_pixel):
    assert ImageDocument().clear_undo_images() is False
    doc = _open(two_pixel)
    doc.rotate(90)
    assert doc.clear_undo_images() is True
    assert doc.history_size == 1


def test_save_writes_in_place(two_pixel):
    doc = _open(two_pixel)
    events = []
    doc.subscribe(lambda event, value: events.append(event))
    doc.rotate(90)
    assert doc.save() is True
    with Image.open(two_pixel) as img:
        assert img.size == (1, 2)
    assert doc.history_size == 1
    assert doc.visual_image().size == (1, 2)
    assert doc.edited is False
    assert DocumentEvent.UPDATE_THUMBNAIL in events


def test_save_unwritable_returns_false(tmp_path):
    doc = ImageDocument()
    doc.path = str(tmp_path / "missing.png")
    assert doc.save() is False
    assert doc.save_as() is False


def test_save_as_creates_numbered_copies(two_pixel, tmp_path):
    doc = _open(two_pixel)
    doc.mirror(True, False)
    assert doc.save_as() is True
    first = str(tmp_path / "photo_copy.png")
    assert doc.path == first
    assert doc.edited is False
    with Image.open(first) as img:
        assert list(img.convert("RGB").getdata()) == [BLUE, RED]
    with Image.open(two_pixel) as img:
        assert list(img.getdata()) == [RED, BLUE]

    other = _open(two_pixel)
    assert other.save_as() is True
    assert other.path == str(tmp_path / "photo_copy_1.png")


def test_save_as_reports_added_image(two_pixel, tmp_path):
    doc = _open(two_pixel)
    added = []
    doc.subscribe(lambda event, value: added.append(value) if event == DocumentEvent.IMAGE_ADDED else None)
    doc.save_as()
    assert added == [str(tmp_path / "photo_copy.png")]


def test_unsubscribe_stops_events(two_pixel):
    doc = _open(two_pixel)
    events = []
    unsubscribe = doc.subscribe(lambda event, value: events.append(event))
    doc.rotate(90)
    count = len(events)
    unsubscribe()
    doc.rotate(90)
    assert len(events) == count
    assert count > 0


def test_path_change_event_carries_url(two_pixel):
    doc = ImageDocument()
    seen = []
    doc.subscribe(lambda event, value: seen.append((event, value)))
    doc.set_path(two_pixel)
    assert (DocumentEvent.PATH_CHANGED, two_pixel) in seen
    assert seen[-1][0] == DocumentEvent.VISUAL_IMAGE_CHANGED


def test_save_image_round_trip(tmp_path):
    target = str(tmp_path / "out.png")
    save_image(Image.new("RGB", (3, 2), BLUE), target)
    with Image.open(target) as img:
        assert img.size == (3, 2)
        assert img.getpixel((2, 1)) == BLUE


def test_save_image_none_writes_nothing(tmp_path):
    target = str(tmp_path / "none.png")
    save_image(None, target)
    assert os.path.exists(target) is False