import os
from datetime import timedelta
from dotenv import load_dotenv

# 載入環境變數
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))

SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "default_secret_key")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///" + os.path.join(basedir, "cafe.db"))

# 上傳圖片 (菜單圖片 / 付款證明)
UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(basedir, "static", "uploads"))
MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE", 5 * 1024 * 1024))

# 註冊時輸入此代碼即成為管理員
ADMIN_SECRET_CODE = os.getenv("ADMIN_SECRET_CODE", "kopikoni123")

ORDERS_PER_PAGE = int(os.getenv("ORDERS_PER_PAGE", 5))
MAIN_COURSE_CATEGORY = os.getenv("MAIN_COURSE_CATEGORY", "Main-Course")

# session 保留一天
PERMANENT_SESSION_LIFETIME = timedelta(days=1)
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = os.getenv("FLASK_ENV") == "production"

TEMPLATES_AUTO_RELOAD = True
