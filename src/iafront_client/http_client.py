"""
HTTP транспорт к OpenAI-совместимому серверу моделей.

Ошибки сервера превращаются в исключения iafront_client.exceptions,
ответы с event-stream читаются через httpx-sse.
"""

import json
import logging
from typing import Any, Dict, Iterator, Optional, Tuple

import httpx
from httpx_sse import SSEError, connect_sse

from iafront_client.config import normalize_base_url
from iafront_client.exceptions import (
    APIError,
    NotFoundError,
    ServerError,
    ServerUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Последнее событие стрима у OpenAI-совместимых серверов
STREAM_DONE = "[DONE]"


def _error_fields(response: httpx.Response) -> Tuple[str, str, Optional[Dict[str, Any]]]:
    """(тип, сообщение, тело) ошибки; понимает формат {"error": {"message", "type"}}."""
    try:
        body = response.json()
    except ValueError:
        return "unknown_error", response.text or f"HTTP {response.status_code}", None
    if not isinstance(body, dict):
        return "unknown_error", response.text, None

    error = body.get("error")
    if isinstance(error, dict):
        return error.get("type") or "unknown_error", error.get("message") or response.text, body
    if error:
        return str(error), body.get("message") or response.text, body
    return "unknown_error", body.get("message") or response.text, body


def raise_for_status(response: httpx.Response) -> None:
    """
    Бросить исключение для неуспешного ответа.

    Raises:
        NotFoundError: 404
        ValidationError: 400, 422
        ServerError: 5xx
        APIError: остальные коды
    """
    if response.is_success:
        return

    status = response.status_code
    error_type, text, details = _error_fields(response)
    message = f"HTTP {status} at {response.request.url.path}: {text}"

    if status == 404:
        raise NotFoundError(message, details)
    if status in (400, 422):
        raise ValidationError(message, details, status_code=status)
    if status >= 500:
        raise ServerError(message, details, status_code=status)
    raise APIError(message, status, error_type, details)


class HTTPClient:
    """
    Синхронный клиент сервера моделей.

    Обычные запросы идут через одно долгоживущее соединение,
    стриминг открывает отдельное с увеличенным таймаутом.
    """

    DEFAULT_TIMEOUT = 60.0
    CONNECT_TIMEOUT = 10.0
    STREAM_TIMEOUT = 300.0

    def __init__(
        self,
        server_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Args:
            server_url: Адрес сервера (схема добавляется при отсутствии)
            timeout: Таймаут чтения в секундах
            transport: Транспорт httpx (подменяется в тестах)
        """
        self._server_url = normalize_base_url(server_url)
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def server_url(self) -> str:
        return self._server_url

    def set_server_url(self, server_url: str) -> None:
        """Переключиться на другой сервер; открытое соединение закрывается."""
        self.close()
        self._server_url = normalize_base_url(server_url)

    def _new_client(self, read_timeout: float) -> httpx.Client:
        return httpx.Client(
            base_url=self._server_url,
            timeout=httpx.Timeout(read_timeout, connect=self.CONNECT_TIMEOUT),
            transport=self._transport
        )

    def _unavailable(self, error: httpx.TransportError) -> ServerUnavailableError:
        logger.warning(f"Server {self._server_url} is unavailable: {error}")
        return ServerUnavailableError(
            f"Server {self._server_url} is unavailable: {error}",
            {"server_url": self._server_url}
        )

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Выполнить запрос и проверить статус ответа.

        Raises:
            APIError: Сервер вернул ошибку
            ServerUnavailableError: Нет соединения или истёк таймаут
        """
        if self._client is None:
            self._client = self._new_client(self.timeout)

        logger.debug(f"{method} {self._server_url}{path}")
        try:
            response = self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as e:
            raise self._unavailable(e) from e

        raise_for_status(response)
        return response

    def get(self, path: str, **kwargs) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> httpx.Response:
        return self.request("POST", path, **kwargs)

    def stream_sse(
        self,
        path: str,
        *,
        method: str = "POST",
        json: Optional[Dict[str, Any]] = None
    ) -> Iterator[Dict[str, Any]]:
        """
        Читать события text/event-stream до маркера [DONE].

        Yields:
            JSON из поля data каждого события; нечитаемые события пропускаются
        """
        with self._new_client(self.STREAM_TIMEOUT) as client:
            try:
                with connect_sse(client, method, path, json=json) as event_source:
                    response = event_source.response
                    if not response.is_success:
                        response.read()
                        raise_for_status(response)

                    for sse in event_source.iter_sse():
                        if sse.data.strip() == STREAM_DONE:
                            break
                        try:
                            yield _decode_event(sse.data)
                        except ValueError as e:
                            logger.warning(f"Skipping malformed SSE event: {e}")
            except SSEError as e:
                raise APIError(f"Invalid event stream from {path}: {e}", status_code=200) from e
            except httpx.TransportError as e:
                raise self._unavailable(e) from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _decode_event(data: str) -> Dict[str, Any]:
    payload = json.loads(data)
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    return payload
