import os
import time
import uuid
import logging
from flask import current_app
from werkzeug.utils import secure_filename
from errors import InvalidImage

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
URL_PREFIX = "/uploads"


def has_file(file):
    return file is not None and bool(file.filename)


def _extension(filename):
    filename = secure_filename(filename or "")
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _file_size(file):
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def validate_image(file):
    ext = _extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise InvalidImage("只接受 png、jpg、jpeg、gif、webp 圖片")
    if file.mimetype and not file.mimetype.startswith("image/"):
        raise InvalidImage("只接受圖片檔案")
    if _file_size(file) > current_app.config["MAX_IMAGE_SIZE"]:
        raise InvalidImage("圖片不可超過 5MB")
    return ext


def save_image(file, subdir):
    """儲存上傳圖片，回傳相對路徑 (例如 /uploads/menu/1700000000000-ab12cd34.jpg)"""
    ext = validate_image(file)
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], subdir)
    os.makedirs(folder, exist_ok=True)

    filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{ext}"
    file.save(os.path.join(folder, filename))
    return f"{URL_PREFIX}/{subdir}/{filename}"


def image_path(relative_path):
    if not relative_path or not relative_path.startswith(URL_PREFIX + "/"):
        return None
    parts = relative_path[len(URL_PREFIX) + 1:].split("/")
    if any(part in ("", ".", "..") for part in parts):
        return None
    return os.path.join(current_app.config["UPLOAD_FOLDER"], *parts)


def delete_image(relative_path):
    path = image_path(relative_path)
    if path is None or not os.path.exists(path):
        return False
    try:
        os.remove(path)
    except OSError as e:
        logger.error(f"刪除圖片失敗 {relative_path}: {e}")
        return False
    return True
