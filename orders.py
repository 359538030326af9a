import math
import logging
from sqlalchemy import select, func, case, delete
from sqlalchemy.orm import selectinload
from models import Order, OrderItem, OrderStatus
from database import transaction
from errors import InvalidStatus, InvalidTransition, OrderNotFound
import uploads

logger = logging.getLogger(__name__)

# 訂單狀態顯示文字
ORDER_STATUS = {
    OrderStatus.PENDING.value: "待確認",
    OrderStatus.PROCESSING.value: "處理中",
    OrderStatus.COMPLETED.value: "已完成",
    OrderStatus.CANCELLED.value: "已取消",
}

# 允許的狀態變更
TRANSITIONS = {
    OrderStatus.PENDING.value: {OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value},
    OrderStatus.PROCESSING.value: {OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value},
    OrderStatus.COMPLETED.value: set(),
    OrderStatus.CANCELLED.value: set(),
}

_STATUS_RANK = case(
    {status: rank for rank, status in enumerate(ORDER_STATUS, start=1)},
    value=Order.status,
    else_=len(ORDER_STATUS) + 1,
)


def parse_status(value):
    try:
        return OrderStatus(value).value
    except ValueError:
        raise InvalidStatus(f"訂單狀態無效: {value}")


def can_transition(current, new):
    return current == new or new in TRANSITIONS.get(current, set())


def get_order(db, order_id):
    order = db.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    return order


def update_status(db, order_id, new_status):
    """管理員變更訂單狀態；無效或不允許的狀態不會修改資料"""
    new_status = parse_status(new_status)
    order = get_order(db, order_id)
    if not can_transition(order.status, new_status):
        raise InvalidTransition(
            f"訂單 #{order_id} 無法從 {order.status} 變更為 {new_status}"
        )
    if order.status != new_status:
        with transaction(db):
            order.status = new_status
        logger.info(f"訂單 #{order_id} 狀態變更為 {new_status}")
    return order


def _with_items(query):
    return query.options(
        selectinload(Order.items).selectinload(OrderItem.menu),
        selectinload(Order.payment_method),
    )


def user_orders(db, user_id):
    query = _with_items(
        select(Order).where(Order.user_id == user_id).order_by(Order.order_date.desc(), Order.order_id.desc())
    )
    return db.scalars(query).all()


def latest_order(db, user_id):
    query = (
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.order_date.desc(), Order.order_id.desc())
        .limit(1)
    )
    return db.scalars(query).first()


def admin_orders(db, page=1, limit=5):
    """依狀態 (待確認優先) 再依時間排序的分頁訂單列表"""
    page = max(page, 1)
    limit = max(limit, 1)
    total_count = db.scalar(select(func.count(Order.order_id)))
    query = _with_items(
        select(Order)
        .order_by(_STATUS_RANK, Order.order_date.desc(), Order.order_id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return {
        "orders": db.scalars(query).all(),
        "current_page": page,
        "limit": limit,
        "total_count": total_count,
        "total_pages": math.ceil(total_count / limit),
    }


def delete_order(db, order_id):
    order = get_order(db, order_id)
    proof = order.payment_proof
    with transaction(db):
        db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        db.execute(delete(Order).where(Order.order_id == order_id))
    if proof:
        uploads.delete_image(proof)
    logger.info(f"訂單 #{order_id} 已刪除")
