"""
Исключения клиента сервера моделей.

Markdown-движок исключений не бросает: любой текст даёт результат.
"""

from typing import Any, Dict, Optional


class IAFrontError(Exception):
    """Общий предок всех ошибок клиента."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ServerUnavailableError(IAFrontError):
    """Нет соединения с сервером или истёк таймаут."""


class ModelNotSelectedError(IAFrontError):
    """Запрос к модели без выбранной модели."""


class APIError(IAFrontError):
    """Сервер ответил ошибкой; status_code - HTTP статус."""

    def __init__(
        self,
        message: str,
        status_code: int,
        error_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.error_type = error_type


class NotFoundError(APIError):
    """404: неизвестный путь или модель."""

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 404, "not_found", details)


class ValidationError(APIError):
    """400/422: сервер отклонил тело запроса."""

    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None, status_code: int = 422):
        super().__init__(message, status_code, "validation_error", details)


class ServerError(APIError):
    """5xx: сбой на стороне сервера."""

    def __init__(self, message: str = "Server error", details: Optional[Dict[str, Any]] = None, status_code: int = 500):
        super().__init__(message, status_code, "server_error", details)
