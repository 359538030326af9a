import re
import logging
from decimal import Decimal, InvalidOperation
from sqlalchemy import select, delete
from sqlalchemy.orm import selectinload
from models import Category, MenuItem, PaymentMethod
from database import transaction
from errors import (
    ValidationError, CategoryNotFound, MenuItemNotFound,
    UniqueViolation, ForeignKeyViolation
)
import uploads

logger = logging.getLogger(__name__)

MENU_IMAGE_DIR = "menu"


def slugify(text):
    if not text:
        return ""
    text = re.sub(r"\s+", "-", text.lower())
    return re.sub(r"[^\w-]+", "", text)


# ===== 分類 =====

def list_categories(db):
    return db.scalars(select(Category).order_by(Category.category_name)).all()


def get_category(db, category_id):
    category = db.get(Category, category_id)
    if category is None:
        raise CategoryNotFound()
    return category


def _category_name(name):
    name = (name or "").strip()
    if not name:
        raise ValidationError("分類名稱不可空白")
    return name


def create_category(db, name):
    name = _category_name(name)
    try:
        with transaction(db):
            category = Category(category_name=name)
            db.add(category)
    except UniqueViolation:
        raise UniqueViolation("分類名稱已存在")
    return category


def update_category(db, category_id, name):
    name = _category_name(name)
    category = get_category(db, category_id)
    try:
        with transaction(db):
            category.category_name = name
    except UniqueViolation:
        raise UniqueViolation("分類名稱已被其他分類使用")
    return category


def delete_category(db, category_id):
    """先刪除分類下的菜單再刪除分類；有菜單已被訂購時整筆取消"""
    category = get_category(db, category_id)
    images = [item.image for item in category.items if item.image]
    try:
        with transaction(db):
            db.execute(delete(MenuItem).where(MenuItem.category_id == category_id))
            db.execute(delete(Category).where(Category.category_id == category_id))
    except ForeignKeyViolation:
        raise ForeignKeyViolation("分類中有菜單已被訂購，無法刪除")
    for image in images:
        uploads.delete_image(image)
    logger.info(f"分類 #{category_id} 及其菜單已刪除")


# ===== 菜單 =====

def list_menu_items(db):
    query = (
        select(MenuItem)
        .options(selectinload(MenuItem.category))
        .order_by(MenuItem.name)
    )
    return db.scalars(query).all()


def get_menu_item(db, menu_id):
    item = db.get(MenuItem, menu_id)
    if item is None:
        raise MenuItemNotFound()
    return item


def get_active_menu_item(db, menu_id):
    item = get_menu_item(db, menu_id)
    if not item.is_active:
        raise MenuItemNotFound("此餐點目前未供應")
    return item


def grouped_menu(db):
    """依分類分組的供應中菜單"""
    items = db.scalars(
        select(MenuItem).where(MenuItem.is_active.is_(True)).order_by(MenuItem.name)
    ).all()
    groups = []
    for category in list_categories(db):
        groups.append({
            "category_id": category.category_id,
            "category_name": category.category_name,
            "category_slug": slugify(category.category_name),
            "items": [item for item in items if item.category_id == category.category_id],
        })
    return groups


def dashboard_items(db, main_course_category):
    popular = db.scalars(
        select(MenuItem)
        .join(Category)
        .where(MenuItem.is_active.is_(True), Category.category_name != main_course_category)
        .order_by(MenuItem.menu_id.desc())
        .limit(4)
    ).all()
    main_course = db.scalars(
        select(MenuItem)
        .join(Category)
        .where(MenuItem.is_active.is_(True), Category.category_name == main_course_category)
        .order_by(MenuItem.name)
        .limit(2)
    ).all()
    return popular, main_course


def parse_price(raw):
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError):
        raise ValidationError("價格格式不正確")
    if not price.is_finite() or price <= 0:
        raise ValidationError("價格必須大於 0")
    return price


def _menu_fields(db, form, current=None):
    name = (form.get("name") or "").strip()
    if not name:
        raise ValidationError("菜單名稱不可空白")
    try:
        category_id = int(form.get("category_id"))
    except (TypeError, ValueError):
        raise ValidationError("請選擇分類")
    if db.get(Category, category_id) is None:
        raise ValidationError("分類不存在")
    # 表單沒有帶 is_active 時沿用原本的供應狀態，新菜單預設供應
    is_active = form.get("is_active")
    if is_active is None:
        is_active = current.is_active if current is not None else True
    else:
        is_active = is_active in ("1", "on", "true", True)
    return {
        "name": name,
        "price": parse_price(form.get("price")),
        "category_id": category_id,
        "description": (form.get("description") or "").strip(),
        "is_active": is_active,
    }


def create_menu_item(db, form, image=None):
    fields = _menu_fields(db, form)
    image_path = uploads.save_image(image, MENU_IMAGE_DIR) if uploads.has_file(image) else None
    try:
        with transaction(db):
            item = MenuItem(image=image_path, **fields)
            db.add(item)
    except Exception:
        if image_path:
            uploads.delete_image(image_path)
        raise
    logger.info(f"新增菜單 {item.name}")
    return item


def update_menu_item(db, menu_id, form, image=None):
    item = get_menu_item(db, menu_id)
    fields = _menu_fields(db, form, current=item)
    old_image = item.image
    new_image = uploads.save_image(image, MENU_IMAGE_DIR) if uploads.has_file(image) else None
    try:
        with transaction(db):
            for key, value in fields.items():
                setattr(item, key, value)
            if new_image:
                item.image = new_image
    except Exception:
        if new_image:
            uploads.delete_image(new_image)
        raise
    # 換上新圖片後刪除舊圖片
    if new_image and old_image:
        uploads.delete_image(old_image)
    return item


def delete_menu_item(db, menu_id):
    item = get_menu_item(db, menu_id)
    image = item.image
    try:
        with transaction(db):
            db.execute(delete(MenuItem).where(MenuItem.menu_id == menu_id))
    except ForeignKeyViolation:
        raise ForeignKeyViolation("此菜單已被訂購，無法刪除")
    if image:
        uploads.delete_image(image)
    logger.info(f"菜單 #{menu_id} 已刪除")


# ===== 付款方式 =====

def active_payment_methods(db):
    return db.scalars(
        select(PaymentMethod).where(PaymentMethod.is_active.is_(True)).order_by(PaymentMethod.method_name)
    ).all()
