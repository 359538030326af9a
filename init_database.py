from decimal import Decimal
from sqlalchemy import select
from werkzeug.security import generate_password_hash
from models import Category, MenuItem, PaymentMethod, User, Role
from database import transaction


def seed_database(db):
    if db.scalars(select(Category).limit(1)).first() is not None:
        print("資料庫已有資料，略過初始化")
        return

    with transaction(db):
        # 創建菜單分類
        categories = {
            name: Category(category_name=name)
            for name in ["Coffee", "Non-Coffee", "Snack", "Main-Course"]
        }
        db.add_all(categories.values())
        db.flush()

        # 創建菜單項目
        menu_items = [
            ("Coffee", "Kopi Susu Koni", "招牌咖啡牛奶", "22000"),
            ("Coffee", "Americano", "雙份濃縮加熱水", "20000"),
            ("Coffee", "Caramel Latte", "焦糖拿鐵", "28000"),
            ("Non-Coffee", "Matcha Latte", "宇治抹茶牛奶", "27000"),
            ("Non-Coffee", "Chocolate", "濃郁熱可可", "25000"),
            ("Snack", "French Fries", "金黃酥脆", "18000"),
            ("Snack", "Pisang Goreng", "炸香蕉", "15000"),
            ("Main-Course", "Nasi Goreng Koni", "招牌炒飯", "35000"),
            ("Main-Course", "Chicken Katsu Rice", "日式炸雞排飯", "38000"),
        ]
        db.add_all([
            MenuItem(
                category_id=categories[category].category_id,
                name=name,
                description=description,
                price=Decimal(price),
                is_active=True,
            )
            for category, name, description, price in menu_items
        ])

        # 付款方式 (貨到付款不需付款證明)
        db.add_all([
            PaymentMethod(method_name="COD", is_cash=True),
            PaymentMethod(method_name="Transfer Bank", is_cash=False),
            PaymentMethod(method_name="QRIS", is_cash=False),
        ])

        # 創建管理員帳號
        db.add(User(
            name="Admin",
            email="admin@kopikoni.local",
            password=generate_password_hash("admin123"),
            role=Role.ADMIN.value,
        ))

    print("數據庫初始化完成！")


if __name__ == "__main__":
    from app import create_app
    from database import get_db

    app = create_app()
    with app.app_context():
        seed_database(get_db())
