# services/errors.py
"""
サービス層で投げる例外。
main.py の exception handler が {"success": false, "message": ...} に変換する。
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """入力不足・不正な値"""
    status_code = 400


class ConflictError(AppError):
    """メールアドレス重複など（元APIに合わせて 400）"""
    status_code = 400


class AuthenticationError(AppError):
    """認証情報やトークンが不正"""
    status_code = 401


class AuthorizationError(AppError):
    """ロール・所有者の不一致"""
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class DependencyError(AppError):
    """メール送信など外部依存の失敗"""
    status_code = 500
