"""
購物車

購物車只存在 session 中。每個操作都接收一個 CartState 並回傳新的
CartState (或 None 代表購物車已清空)，不直接修改傳入的購物車。
每次變更後都從所有項目重新計算小計與總計。
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Optional
from errors import InvalidQuantity, CartLineNotFound

SESSION_KEY = "cart"


@dataclass(frozen=True)
class CartLine:
    menu_id: int
    name: str
    unit_price: Decimal
    image: Optional[str] = None
    quantity: int = 0
    line_total: Decimal = Decimal("0")


@dataclass(frozen=True)
class CartState:
    lines: Dict[int, CartLine] = field(default_factory=dict)
    total_qty: int = 0
    total_price: Decimal = Decimal("0")

    def is_empty(self):
        return not self.lines

    def to_dict(self):
        return {
            "items": {
                str(menu_id): {
                    "menu_id": line.menu_id,
                    "name": line.name,
                    "unit_price": str(line.unit_price),
                    "image": line.image,
                    "quantity": line.quantity,
                }
                for menu_id, line in self.lines.items()
            },
            "total_qty": self.total_qty,
            "total_price": str(self.total_price),
        }

    @classmethod
    def from_dict(cls, data):
        lines = {}
        for item in data.get("items", {}).values():
            line = CartLine(
                menu_id=int(item["menu_id"]),
                name=item["name"],
                unit_price=Decimal(item["unit_price"]),
                image=item.get("image"),
                quantity=int(item["quantity"]),
            )
            lines[line.menu_id] = line
        # session 中的總計不直接採用
        return _recompute(lines)


def _recompute(lines):
    if not lines:
        return None
    lines = {
        menu_id: replace(line, line_total=line.unit_price * line.quantity)
        for menu_id, line in lines.items()
    }
    return CartState(
        lines=lines,
        total_qty=sum(line.quantity for line in lines.values()),
        total_price=sum((line.line_total for line in lines.values()), Decimal("0")),
    )


def _check_quantity(quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity()
    return quantity


def parse_quantity(raw, default=1):
    """表單數量: 空白時使用 default (None 表示必填)，其他非正整數一律拒絕"""
    if raw is None or str(raw).strip() == "":
        if default is None:
            raise InvalidQuantity()
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise InvalidQuantity()
    return _check_quantity(value)


def add_item(cart, menu_item, quantity):
    """加入購物車；已存在的項目會累加數量"""
    quantity = _check_quantity(quantity)
    lines = dict(cart.lines) if cart else {}

    line = lines.get(menu_item.menu_id)
    if line is None:
        line = CartLine(
            menu_id=menu_item.menu_id,
            name=menu_item.name,
            unit_price=Decimal(str(menu_item.price)),
            image=menu_item.image,
            quantity=0,
        )
    lines[menu_item.menu_id] = replace(line, quantity=line.quantity + quantity)
    return _recompute(lines)


def update_quantity(cart, menu_id, quantity):
    """直接設定數量 (不是累加)"""
    quantity = _check_quantity(quantity)
    if not cart or menu_id not in cart.lines:
        raise CartLineNotFound()
    lines = dict(cart.lines)
    lines[menu_id] = replace(lines[menu_id], quantity=quantity)
    return _recompute(lines)


def remove_item(cart, menu_id):
    """移除項目；最後一項移除後回傳 None"""
    if not cart or menu_id not in cart.lines:
        return cart
    lines = {k: v for k, v in cart.lines.items() if k != menu_id}
    return _recompute(lines)


def load_cart(session):
    data = session.get(SESSION_KEY)
    if not data:
        return None
    return CartState.from_dict(data)


def save_cart(session, cart):
    if cart is None or cart.is_empty():
        session.pop(SESSION_KEY, None)
    else:
        session[SESSION_KEY] = cart.to_dict()
