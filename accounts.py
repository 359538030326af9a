import logging
from sqlalchemy import select
from werkzeug.security import generate_password_hash, check_password_hash
from models import User, Role
from database import transaction
from errors import ValidationError, AuthenticationError, UniqueViolation

logger = logging.getLogger(__name__)


def role_for_code(admin_code, secret_code):
    if admin_code and admin_code == secret_code:
        return Role.ADMIN
    return Role.CUSTOMER


def register_user(db, name, email, password, admin_code=None, secret_code=None):
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email or not password:
        raise ValidationError("請填寫姓名、Email 與密碼")

    role = role_for_code(admin_code, secret_code)
    try:
        with transaction(db):
            user = User(
                name=name,
                email=email,
                password=generate_password_hash(password),
                role=role.value,
            )
            db.add(user)
    except UniqueViolation:
        raise UniqueViolation("此 Email 已經註冊")
    logger.info(f"新用戶註冊: {email} ({role.value})")
    return user


def authenticate(db, email, password, login_as=Role.CUSTOMER.value):
    """檢查帳號密碼，並確認使用者從正確的入口登入"""
    email = (email or "").strip().lower()
    user = db.scalars(select(User).where(User.email == email)).first()
    if user is None:
        raise AuthenticationError("找不到此 Email")
    if not check_password_hash(user.password, password or ""):
        raise AuthenticationError("密碼錯誤")

    if login_as == Role.ADMIN.value and user.role != Role.ADMIN.value:
        raise AuthenticationError("登入失敗，您的帳號不是管理員帳號")
    if login_as != Role.ADMIN.value and user.role == Role.ADMIN.value:
        raise AuthenticationError("管理員請從管理員入口登入")
    return user


def session_user(user):
    # 存入 session 的使用者資料 (不含密碼)
    return {
        "user_id": user.user_id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
    }
