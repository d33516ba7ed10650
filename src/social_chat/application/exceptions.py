from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "app_error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    code = "not_found"


class UnknownUserError(NotFoundError):
    code = "unknown_user"

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"User not found: {username}")


class ForbiddenError(AppError):
    code = "forbidden"


class ValidationError(AppError):
    code = "validation_error"


class CodecError(AppError):
    """Stored message envelope could not be decrypted."""

    code = "codec_error"
