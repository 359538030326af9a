import os

import pytest

import uploads
from errors import InvalidImage
from tests.conftest import make_image


def test_save_and_delete_image(app):
    with app.app_context():
        path = uploads.save_image(make_image("latte.JPG"), "menu")
        assert path.startswith("/uploads/menu/") and path.endswith(".jpg")
        full = uploads.image_path(path)
        assert os.path.exists(full)
        assert uploads.delete_image(path)
        assert not os.path.exists(full)
        assert not uploads.delete_image(path)


@pytest.mark.parametrize("filename,content_type", [
    ("notes.txt", "text/plain"),
    ("script.png", "application/x-sh"),
    ("noextension", "image/png"),
])
def test_rejects_non_images(app, filename, content_type):
    with app.app_context():
        with pytest.raises(InvalidImage):
            uploads.validate_image(make_image(filename, content_type=content_type))


def test_rejects_large_images(app):
    app.config["MAX_IMAGE_SIZE"] = 10
    with app.app_context():
        with pytest.raises(InvalidImage):
            uploads.validate_image(make_image())


def test_image_path_stays_inside_upload_folder(app):
    with app.app_context():
        assert uploads.image_path("/uploads/../config.py") is None
        assert uploads.image_path("/static/other.png") is None
        assert uploads.image_path(None) is None


def test_has_file():
    assert not uploads.has_file(None)
    assert not uploads.has_file(make_image(filename=""))
    assert uploads.has_file(make_image())
