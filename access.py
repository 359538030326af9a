import enum
from functools import wraps
from flask import session, redirect, url_for, flash
from models import Role


class Access(enum.Enum):
    ANONYMOUS = "anonymous"
    CUSTOMER = "customer"
    ADMIN = "admin"


_ROLE_ACCESS = {
    Role.CUSTOMER.value: Access.CUSTOMER,
    Role.ADMIN.value: Access.ADMIN,
}

DENIED_MESSAGES = {
    Access.CUSTOMER: "請先以顧客身分登入",
    Access.ADMIN: "您沒有管理員權限",
}


def classify(session_data):
    user = session_data.get("user")
    if not user:
        return Access.ANONYMOUS
    return _ROLE_ACCESS.get(user.get("role"), Access.ANONYMOUS)


def current_user():
    return session.get("user")


# 路由權限裝飾器
def require(access):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if classify(session) != access:
                flash(DENIED_MESSAGES.get(access, "請先登入"), "error")
                return redirect(url_for("auth.landing"))
            return f(*args, **kwargs)
        return decorated_function
    return decorator


customer_required = require(Access.CUSTOMER)
admin_required = require(Access.ADMIN)
