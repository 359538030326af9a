import os
from datetime import datetime, timedelta

import pytest

import orders
from cart import add_item
from checkout import place_order
from errors import InvalidStatus, InvalidTransition, OrderNotFound
from models import Order, OrderItem, MenuItem
from tests.conftest import make_image


def new_order(db, seed, qty=1, proof=None):
    cart = add_item(None, db.get(MenuItem, seed.latte_id), qty)
    method = seed.transfer_id if proof else seed.cod_id
    return place_order(db, seed.customer_id, cart, "Budi", "Jl. Kopi 1", method, proof=proof)


def stored_status(new_session, order_id):
    return new_session().get(Order, order_id).status


def test_valid_lifecycle(db, seed, new_session):
    order_id = new_order(db, seed)
    orders.update_status(db, order_id, "Processing")
    orders.update_status(db, order_id, "Completed")
    assert stored_status(new_session, order_id) == "Completed"


def test_cancel_from_pending(db, seed, new_session):
    order_id = new_order(db, seed)
    orders.update_status(db, order_id, "Cancelled")
    assert stored_status(new_session, order_id) == "Cancelled"


@pytest.mark.parametrize("status", ["Shipped", "pending", "", None])
def test_unknown_status_rejected(db, seed, new_session, status):
    order_id = new_order(db, seed)
    with pytest.raises(InvalidStatus):
        orders.update_status(db, order_id, status)
    assert stored_status(new_session, order_id) == "Pending"


@pytest.mark.parametrize("path,target", [
    ([], "Completed"),
    (["Processing", "Completed"], "Pending"),
    (["Cancelled"], "Processing"),
    (["Processing"], "Pending"),
])
def test_disallowed_transition(db, seed, new_session, path, target):
    order_id = new_order(db, seed)
    for status in path:
        orders.update_status(db, order_id, status)
    with pytest.raises(InvalidTransition):
        orders.update_status(db, order_id, target)
    assert stored_status(new_session, order_id) == (path[-1] if path else "Pending")


def test_same_status_is_noop(db, seed):
    order_id = new_order(db, seed)
    assert orders.update_status(db, order_id, "Pending").status == "Pending"


def test_missing_order(db, seed):
    with pytest.raises(OrderNotFound):
        orders.update_status(db, 404, "Processing")


def test_user_orders_newest_first(db, seed):
    first = new_order(db, seed)
    second = new_order(db, seed, qty=2)
    db.get(Order, first).order_date = datetime.now() - timedelta(days=1)
    db.commit()

    history = orders.user_orders(db, seed.customer_id)
    assert [o.order_id for o in history] == [second, first]
    assert history[0].items[0].menu.name == "Kopi Susu"
    assert history[0].payment_method.method_name == "COD"
    assert orders.latest_order(db, seed.customer_id).order_id == second
    assert orders.user_orders(db, seed.admin_id) == []


def test_admin_orders_sorted_by_status_and_paginated(db, seed):
    cancelled = new_order(db, seed)
    processing = new_order(db, seed)
    pending = new_order(db, seed)
    orders.update_status(db, cancelled, "Cancelled")
    orders.update_status(db, processing, "Processing")

    page1 = orders.admin_orders(db, page=1, limit=2)
    assert page1["total_count"] == 3
    assert page1["total_pages"] == 2
    assert [o.order_id for o in page1["orders"]] == [pending, processing]

    page2 = orders.admin_orders(db, page=2, limit=2)
    assert [o.order_id for o in page2["orders"]] == [cancelled]


def test_delete_order_removes_lines_and_proof(app, db, seed, new_session):
    order_id = new_order(db, seed, proof=make_image())
    proof = db.get(Order, order_id).payment_proof
    proof_file = os.path.join(app.config["UPLOAD_FOLDER"], "proofs", proof.rsplit("/", 1)[1])
    assert os.path.exists(proof_file)

    orders.delete_order(db, order_id)

    fresh = new_session()
    assert fresh.get(Order, order_id) is None
    assert fresh.query(OrderItem).filter_by(order_id=order_id).count() == 0
    assert not os.path.exists(proof_file)


def test_delete_missing_order(db, seed):
    with pytest.raises(OrderNotFound):
        orders.delete_order(db, 404)
