from flask import (
    Flask, Blueprint, request, render_template, session, redirect, url_for,
    flash, send_from_directory, current_app
)
from sqlalchemy.exc import SQLAlchemyError
import logging
import config
from database import init_db, get_db
from access import classify, current_user, customer_required, admin_required, Access
from cart import load_cart, save_cart, parse_quantity, add_item, update_quantity, remove_item
from checkout import place_order
from models import OrderStatus
from errors import (
    CafeError, ValidationError, NotFoundError, IntegrityViolation, CheckoutFailed
)
import accounts
import catalog
import orders

# 設置日誌
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")
shop_bp = Blueprint("shop", __name__)
order_bp = Blueprint("order", __name__, url_prefix="/order")
admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _back(default_endpoint="shop.dashboard"):
    return redirect(request.referrer or url_for(default_endpoint))


def _home_for(access):
    if access == Access.ADMIN:
        return url_for("admin.menu_index")
    if access == Access.CUSTOMER:
        return url_for("shop.dashboard")
    return url_for("auth.landing")


# ===== 登入 / 註冊 =====

@auth_bp.route("/")
def landing():
    access = classify(session)
    if access != Access.ANONYMOUS:
        return redirect(_home_for(access))
    return render_template("landing.html", error=None, active_tab="customer")


@auth_bp.route("/login", methods=["POST"])
def login():
    login_as = request.form.get("login_as") or "customer"
    try:
        user = accounts.authenticate(
            get_db(), request.form.get("email"), request.form.get("password"), login_as
        )
    except ValidationError as e:
        return render_template("landing.html", error=e.message, active_tab=login_as)

    session.clear()
    session.permanent = True
    session["user"] = accounts.session_user(user)
    logger.info(f"用戶登入: {user.email}")
    return redirect(_home_for(classify(session)))


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "POST":
        try:
            accounts.register_user(
                get_db(),
                request.form.get("name"),
                request.form.get("email"),
                request.form.get("password"),
                admin_code=request.form.get("admin_code"),
                secret_code=config_value("ADMIN_SECRET_CODE"),
            )
        except (ValidationError, IntegrityViolation) as e:
            return render_template("register.html", error=e.message)
        flash("註冊成功，請登入", "success")
        return redirect(url_for("auth.landing"))

    return render_template("register.html", error=None)


@auth_bp.route("/logout")
def logout():
    session.clear()
    return redirect(url_for("auth.landing"))


# ===== 顧客頁面 =====

@shop_bp.route("/")
def index():
    return redirect(_home_for(classify(session)))


@shop_bp.route("/dashboard")
@customer_required
def dashboard():
    popular, main_course = catalog.dashboard_items(get_db(), config_value("MAIN_COURSE_CATEGORY"))
    return render_template(
        "dashboard.html",
        popular_menu_items=popular,
        main_course_items=main_course,
    )


@shop_bp.route("/menu/all")
@customer_required
def menu_all():
    return render_template("menu_all.html", grouped_menu=catalog.grouped_menu(get_db()))


@shop_bp.route("/uploads/<path:filename>")
def uploaded_file(filename):
    return send_from_directory(config_value("UPLOAD_FOLDER"), filename)


# ===== 購物車 / 訂單 =====

@order_bp.route("/add", methods=["POST"])
@customer_required
def add():
    try:
        quantity = parse_quantity(request.form.get("quantity"))
        menu_id = int(request.form.get("menu_id", ""))
    except ValueError:
        flash("菜單或數量無效", "error")
        return _back()
    except ValidationError as e:
        flash(e.message, "error")
        return _back()

    try:
        item = catalog.get_active_menu_item(get_db(), menu_id)
    except NotFoundError as e:
        flash(e.message, "error")
        return _back()

    save_cart(session, add_item(load_cart(session), item, quantity))
    flash(f"已將 {item.name} 加入購物車！", "success")
    return _back()


@order_bp.route("/cart")
@customer_required
def cart():
    return render_template(
        "cart.html",
        cart=load_cart(session),
        payment_methods=catalog.active_payment_methods(get_db()),
    )


@order_bp.route("/update/<int:menu_id>", methods=["POST"])
@customer_required
def update(menu_id):
    try:
        # 修改數量時不可留白
        quantity = parse_quantity(request.form.get("quantity"), default=None)
        save_cart(session, update_quantity(load_cart(session), menu_id, quantity))
    except CafeError as e:
        flash(e.message, "error")
    return redirect(url_for("order.cart"))


@order_bp.route("/remove/<int:menu_id>", methods=["POST"])
@customer_required
def remove(menu_id):
    save_cart(session, remove_item(load_cart(session), menu_id))
    return redirect(url_for("order.cart"))


@order_bp.route("/submit", methods=["POST"])
@customer_required
def submit():
    try:
        order_id = place_order(
            get_db(),
            current_user()["user_id"],
            load_cart(session),
            request.form.get("customer_name"),
            request.form.get("customer_address"),
            request.form.get("payment_method_id"),
            proof=request.files.get("payment_proof"),
        )
    except (ValidationError, CheckoutFailed) as e:
        flash(e.message, "error")
        return redirect(url_for("order.cart"))

    # 清空購物車
    save_cart(session, None)
    flash(f"訂單 #{order_id} 已成功建立！", "success")
    return redirect(url_for("order.history"))


@order_bp.route("/history")
@customer_required
def history():
    user_orders = orders.user_orders(get_db(), current_user()["user_id"])
    return render_template("history.html", orders=user_orders)


# ===== 管理後台: 菜單 =====

@admin_bp.route("/")
@admin_required
def dashboard():
    return redirect(url_for("admin.menu_index"))


@admin_bp.route("/menu")
@admin_required
def menu_index():
    return render_template("admin/menu_index.html", menu_items=catalog.list_menu_items(get_db()))


@admin_bp.route("/menu/new")
@admin_required
def menu_new():
    return render_template(
        "admin/menu_form.html", menu_item=None, categories=catalog.list_categories(get_db())
    )


@admin_bp.route("/menu", methods=["POST"])
@admin_required
def menu_create():
    try:
        item = catalog.create_menu_item(get_db(), request.form, request.files.get("image"))
    except ValidationError as e:
        flash(e.message, "error")
        return redirect(url_for("admin.menu_new"))
    flash(f"已新增菜單 {item.name}", "success")
    return redirect(url_for("admin.menu_index"))


@admin_bp.route("/menu/<int:menu_id>/edit", methods=["GET", "POST"])
@admin_required
def menu_edit(menu_id):
    db = get_db()
    if request.method == "POST":
        try:
            catalog.update_menu_item(db, menu_id, request.form, request.files.get("image"))
        except ValidationError as e:
            flash(e.message, "error")
            return redirect(url_for("admin.menu_edit", menu_id=menu_id))
        flash("菜單已更新", "success")
        return redirect(url_for("admin.menu_index"))

    return render_template(
        "admin/menu_form.html",
        menu_item=catalog.get_menu_item(db, menu_id),
        categories=catalog.list_categories(db),
    )


@admin_bp.route("/menu/<int:menu_id>/delete", methods=["POST"])
@admin_required
def menu_delete(menu_id):
    try:
        catalog.delete_menu_item(get_db(), menu_id)
    except IntegrityViolation as e:
        flash(e.message, "error")
    else:
        flash("菜單已刪除", "success")
    return redirect(url_for("admin.menu_index"))


# ===== 管理後台: 分類 =====

@admin_bp.route("/categories")
@admin_required
def categories_index():
    return render_template("admin/categories_index.html", categories=catalog.list_categories(get_db()))


@admin_bp.route("/categories/new")
@admin_required
def category_new():
    return render_template("admin/category_form.html", category=None)


@admin_bp.route("/categories", methods=["POST"])
@admin_required
def category_create():
    try:
        catalog.create_category(get_db(), request.form.get("category_name"))
    except (ValidationError, IntegrityViolation) as e:
        flash(e.message, "error")
        return redirect(url_for("admin.category_new"))
    flash("分類已新增", "success")
    return redirect(url_for("admin.categories_index"))


@admin_bp.route("/categories/<int:category_id>/edit", methods=["GET", "POST"])
@admin_required
def category_edit(category_id):
    db = get_db()
    if request.method == "POST":
        try:
            catalog.update_category(db, category_id, request.form.get("category_name"))
        except (ValidationError, IntegrityViolation) as e:
            flash(e.message, "error")
            return redirect(url_for("admin.category_edit", category_id=category_id))
        flash("分類已更新", "success")
        return redirect(url_for("admin.categories_index"))

    return render_template("admin/category_form.html", category=catalog.get_category(db, category_id))


@admin_bp.route("/categories/<int:category_id>/delete", methods=["POST"])
@admin_required
def category_delete(category_id):
    try:
        catalog.delete_category(get_db(), category_id)
    except IntegrityViolation as e:
        flash(e.message, "error")
    else:
        flash("分類已刪除", "success")
    return redirect(url_for("admin.categories_index"))


# ===== 管理後台: 訂單 =====

@admin_bp.route("/orders")
@admin_required
def orders_index():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", config_value("ORDERS_PER_PAGE"), type=int)
    result = orders.admin_orders(get_db(), page=page, limit=limit)
    return render_template("admin/orders_index.html", statuses=list(OrderStatus), **result)


@admin_bp.route("/orders/<int:order_id>/status", methods=["POST"])
@admin_required
def order_status(order_id):
    new_status = request.form.get("new_status")
    try:
        orders.update_status(get_db(), order_id, new_status)
    except ValidationError as e:
        flash(e.message, "error")
    else:
        flash(f"訂單 #{order_id} 狀態已更新為 {new_status}", "success")
    return redirect(url_for("admin.orders_index", page=request.args.get("page", 1)))


@admin_bp.route("/orders/<int:order_id>/delete", methods=["POST"])
@admin_required
def order_delete(order_id):
    orders.delete_order(get_db(), order_id)
    flash(f"訂單 #{order_id} 已刪除", "success")
    return redirect(url_for("admin.orders_index"))


# ===== 錯誤處理 =====

def handle_not_found(e):
    message = e.message if isinstance(e, CafeError) else "找不到頁面"
    return render_template("error.html", message=message, status=404), 404


def handle_server_error(e):
    original = getattr(e, "original_exception", None) or e
    logger.error(f"伺服器錯誤: {original!r}", exc_info=original)
    return render_template("error.html", message="伺服器發生錯誤，請稍後再試", status=500), 500


def inject_globals():
    access = classify(session)
    latest = None
    if access == Access.CUSTOMER:
        db = get_db()
        try:
            latest = orders.latest_order(db, current_user()["user_id"])
        except SQLAlchemyError as e:
            # 資料庫故障時仍要能顯示錯誤頁
            logger.error(f"讀取最新訂單失敗: {e!r}")
            db.rollback()
    cart_state = load_cart(session)
    return {
        "user": current_user(),
        "access": access.value,
        "latest_order_status": latest,
        "order_status_labels": orders.ORDER_STATUS,
        "cart_qty": cart_state.total_qty if cart_state else 0,
    }


def config_value(key):
    return current_app.config[key]


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(config)
    if overrides:
        app.config.update(overrides)
    app.secret_key = app.config["SECRET_KEY"]

    init_db(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(shop_bp)
    app.register_blueprint(order_bp)
    app.register_blueprint(admin_bp)

    app.register_error_handler(NotFoundError, handle_not_found)
    app.register_error_handler(404, handle_not_found)
    app.register_error_handler(500, handle_server_error)
    app.context_processor(inject_globals)

    @app.cli.command("init-db")
    def init_db_command():
        """建立資料表並寫入預設資料"""
        from init_database import seed_database
        seed_database(get_db())

    return app


if __name__ == "__main__":
    create_app().run(debug=True, host='0.0.0.0', port=5000)
