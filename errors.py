"""
錯誤類型

路由依照類型決定顯示訊息、回傳 404 或記錄後回傳 500。
"""


class CafeError(Exception):
    message = "發生錯誤"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


# 輸入驗證錯誤
class ValidationError(CafeError):
    message = "輸入資料不正確"


class InvalidQuantity(ValidationError):
    message = "數量必須是大於 0 的整數"


class EmptyCart(ValidationError):
    message = "購物車是空的，無法結帳"


class PaymentProofRequired(ValidationError):
    message = "此付款方式需要上傳付款證明"


class InvalidImage(ValidationError):
    message = "圖片格式不正確或超過 5MB"


class InvalidStatus(ValidationError):
    message = "訂單狀態無效"


class InvalidTransition(InvalidStatus):
    message = "無法變更為此訂單狀態"


class AuthenticationError(ValidationError):
    message = "帳號或密碼錯誤"


# 找不到資料
class NotFoundError(CafeError):
    message = "找不到資料"


class MenuItemNotFound(NotFoundError):
    message = "找不到該菜單項目"


class CategoryNotFound(NotFoundError):
    message = "找不到該菜單分類"


class OrderNotFound(NotFoundError):
    message = "找不到該訂單"


class CartLineNotFound(NotFoundError):
    message = "購物車中沒有此項目"


# 資料庫限制錯誤 (由 database.classify_integrity_error 產生)
class IntegrityViolation(CafeError):
    message = "資料違反資料庫限制"


class UniqueViolation(IntegrityViolation):
    message = "資料重複"


class ForeignKeyViolation(IntegrityViolation):
    message = "資料仍被其他紀錄引用"


class CheckoutFailed(CafeError):
    message = "結帳失敗，請稍後再試"
