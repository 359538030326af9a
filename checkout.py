"""
結帳

把購物車轉成一筆訂單與其訂單項目。訂單與所有項目在同一個交易中寫入，
任何一步失敗都會整筆 rollback，購物車保持不變。
"""
import logging
from datetime import datetime
from models import Order, OrderItem, OrderStatus, PaymentMethod
from database import transaction
from errors import (
    EmptyCart, ValidationError, PaymentProofRequired, CheckoutFailed
)
import uploads

logger = logging.getLogger(__name__)

PROOF_DIR = "proofs"


def _required(value, message):
    value = (value or "").strip()
    if not value:
        raise ValidationError(message)
    return value


def _parse_method_id(payment_method_id):
    try:
        return int(payment_method_id)
    except (TypeError, ValueError):
        raise ValidationError("請選擇付款方式")


def _order_line(order_id, line):
    # 單價取自購物車，不重新讀取菜單
    return OrderItem(
        order_id=order_id,
        menu_id=line.menu_id,
        quantity=line.quantity,
        price_per_item=line.unit_price,
    )


def validate_checkout(cart, customer_name, customer_address, payment_method_id):
    """不需存取資料庫的前置檢查"""
    if cart is None or cart.is_empty():
        raise EmptyCart()
    name = _required(customer_name, "請輸入姓名")
    address = _required(customer_address, "請輸入地址")
    method_id = _parse_method_id(payment_method_id)
    return name, address, method_id


def place_order(db, user_id, cart, customer_name, customer_address, payment_method_id, proof=None):
    name, address, method_id = validate_checkout(
        cart, customer_name, customer_address, payment_method_id
    )

    method = db.get(PaymentMethod, method_id)
    if method is None or not method.is_active:
        raise ValidationError("付款方式無效")
    if not method.is_cash and not uploads.has_file(proof):
        raise PaymentProofRequired()
    if uploads.has_file(proof):
        uploads.validate_image(proof)

    proof_path = uploads.save_image(proof, PROOF_DIR) if uploads.has_file(proof) else None

    logger.info(f"開始結帳 user_id={user_id} 共 {cart.total_qty} 件")
    try:
        with transaction(db):
            order = Order(
                user_id=user_id,
                order_date=datetime.now(),
                total_amount=cart.total_price,
                status=OrderStatus.PENDING.value,
                customer_name=name,
                customer_address=address,
                payment_method_id=method.method_id,
                payment_proof=proof_path,
            )
            db.add(order)
            db.flush()

            for line in cart.lines.values():
                db.add(_order_line(order.order_id, line))
            db.flush()
            order_id = order.order_id
    except Exception as e:
        logger.error(f"結帳失敗，已 rollback user_id={user_id}: {e}")
        if proof_path:
            uploads.delete_image(proof_path)
        raise CheckoutFailed() from e

    logger.info(f"訂單 #{order_id} 已建立，總金額 {cart.total_price}")
    return order_id
