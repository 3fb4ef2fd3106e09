"""
Основной клиент IAFront.

ModelClient - работа с OpenAI-совместимым сервером моделей
(список моделей, ответы, генерация заголовков).
ChatSession - сценарий диалога поверх локальной истории.
"""

import logging
from datetime import datetime
from typing import Callable, Iterator, List, Optional
from uuid import uuid4

import httpx

from iafront_client.config import ConfigManager, get_config_manager
from iafront_client.exceptions import IAFrontError, ModelNotSelectedError
from iafront_client.http_client import HTTPClient
from iafront_client.models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    ConversationSummary,
    ModelListResponse,
    StoredConversation,
)

logger = logging.getLogger(__name__)

NO_MODEL_REPLY = "Модель не выбрана."
NO_CHOICES_REPLY = "Нет ответа от модели."
EMPTY_CONTENT_REPLY = "Пустой ответ модели."
SELECT_MODEL_NOTICE = "Выберите модель и повторите попытку."

DEFAULT_TITLE = "Новый диалог"
FALLBACK_TITLE = "Диалог"
TITLE_PROMPT_CHARS = 42
TITLE_MAX_CHARS = 60
TITLE_SYSTEM_PROMPT = (
    "Придумай короткое название диалога на русском языке "
    "(не более 6 слов), без кавычек и точки в конце."
)


def _clean_title(content: str) -> str:
    """Первая непустая строка ответа без кавычек и точки в конце."""
    for line in content.splitlines():
        title = line.strip()
        if not title:
            continue
        if title.startswith('"'):
            title = title[1:]
        if title.endswith('"'):
            title = title[:-1]
        if title.endswith('.'):
            title = title[:-1]
        return title[:TITLE_MAX_CHARS]
    return ""


def fallback_title(prompt: str) -> str:
    """Заголовок из начала первого сообщения."""
    return prompt.strip()[:TITLE_PROMPT_CHARS] or FALLBACK_TITLE


class ModelClient:
    """
    Клиент для OpenAI-совместимого сервера моделей.

    Пример использования:

    ```python
    client = ModelClient(server_url="localhost:1234")
    if client.initialize():
        print(client.generate_reply("Привет!"))
    ```
    """

    def __init__(
        self,
        server_url: str,
        model: Optional[str] = None,
        timeout: float = HTTPClient.DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Инициализация клиента.

        Args:
            server_url: URL сервера (например, http://localhost:1234)
            model: Ранее выбранная модель
            timeout: Таймаут запросов в секундах
            transport: Транспорт httpx (для тестов)
        """
        self._http = HTTPClient(server_url=server_url, timeout=timeout, transport=transport)
        self._model = model

    # ===== SERVER & MODELS =====

    @property
    def server_url(self) -> str:
        return self._http.server_url

    def set_server_url(self, server_url: str) -> None:
        """Сменить сервер; выбранная модель сбрасывается."""
        self._http.set_server_url(server_url)
        self._model = None

    @property
    def selected_model(self) -> Optional[str]:
        return self._model

    def select_model(self, model_id: str) -> None:
        self._model = model_id

    def list_models(self) -> List[str]:
        """
        Получить список моделей сервера.

        Returns:
            Идентификаторы моделей
        """
        response = self._http.get("/v1/models")
        result = ModelListResponse.model_validate(response.json())
        return [m.id.strip() for m in result.data if m.id.strip()]

    def initialize(self) -> bool:
        """
        Проверить сервер и выбрать модель.

        Текущая модель сохраняется, если сервер её ещё предлагает,
        иначе выбирается первая.

        Returns:
            False если на сервере нет моделей
        """
        models = self.list_models()
        if not models:
            logger.info(f"No models available at {self.server_url}")
            return False
        if self._model not in models:
            self._model = models[0]
        logger.info(f"Using model {self._model} at {self.server_url}")
        return True

    # ===== COMPLETIONS =====

    def _build_request(
        self,
        prompt: str,
        history: Optional[List[ChatMessage]],
        stream: bool
    ) -> dict:
        if self._model is None:
            raise ModelNotSelectedError(NO_MODEL_REPLY)
        messages = list(history or [])
        messages.append(ChatMessage(role="user", content=prompt))
        request = ChatCompletionRequest(model=self._model, messages=messages, stream=stream)
        return request.model_dump()

    def generate_reply(self, prompt: str, history: Optional[List[ChatMessage]] = None) -> str:
        """
        Получить ответ модели (без стриминга).

        Args:
            prompt: Сообщение пользователя
            history: Предыдущие сообщения диалога

        Returns:
            Текст ответа или служебное сообщение, если ответа нет
        """
        if self._model is None:
            return NO_MODEL_REPLY

        payload = self._build_request(prompt, history, stream=False)
        response = self._http.post("/v1/chat/completions", json=payload)
        result = ChatCompletionResponse.model_validate(response.json())

        if not result.choices:
            return NO_CHOICES_REPLY
        message = result.choices[0].message
        content = (message.content or "").strip() if message else ""
        return content or EMPTY_CONTENT_REPLY

    def stream_reply(
        self,
        prompt: str,
        history: Optional[List[ChatMessage]] = None
    ) -> Iterator[str]:
        """
        Стриминг ответа модели.

        Yields:
            Фрагменты текста ответа
        """
        payload = self._build_request(prompt, history, stream=True)
        for chunk in self._http.stream_sse("/v1/chat/completions", json=payload):
            result = ChatCompletionResponse.model_validate(chunk)
            if not result.choices:
                continue
            delta = result.choices[0].delta or result.choices[0].message
            if delta and delta.content:
                yield delta.content

    def generate_conversation_title(self, first_prompt: str) -> str:
        """
        Сгенерировать короткий заголовок диалога.

        Args:
            first_prompt: Первое сообщение пользователя

        Returns:
            Заголовок (может быть пустым, если модель ничего не вернула)
        """
        if self._model is None:
            return first_prompt.strip()[:TITLE_PROMPT_CHARS]

        history = [ChatMessage(role="system", content=TITLE_SYSTEM_PROMPT)]
        payload = self._build_request(first_prompt, history, stream=False)
        response = self._http.post("/v1/chat/completions", json=payload)
        result = ChatCompletionResponse.model_validate(response.json())

        if not result.choices or result.choices[0].message is None:
            return ""
        return _clean_title(result.choices[0].message.content or "")

    def close(self) -> None:
        """Закрыть HTTP клиент."""
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ChatSession:
    """
    Диалоги пользователя: создание, переключение, отправка сообщений.

    Диалоги упорядочены от последнего изменённого к первому
    и сохраняются после каждого изменения.
    """

    def __init__(self, client: ModelClient, config_manager: Optional[ConfigManager] = None):
        self.client = client
        self.config_manager = config_manager or get_config_manager()
        self.model_ready = False
        self.status_message: Optional[str] = None

        self._conversations = self.config_manager.load_conversations()
        self._sort()
        if not self._conversations:
            self._conversations.append(self._create_empty())
            self._persist()
        self.current_id = self._conversations[0].id

    # ===== STATE =====

    @property
    def conversations(self) -> List[StoredConversation]:
        return list(self._conversations)

    @property
    def current(self) -> StoredConversation:
        conv = self.get(self.current_id)
        if conv is None:
            conv = self._conversations[0]
            self.current_id = conv.id
        return conv

    def get(self, conversation_id: str) -> Optional[StoredConversation]:
        """Найти диалог по ID или по его началу."""
        for conv in self._conversations:
            if conv.id == conversation_id:
                return conv
        matches = [c for c in self._conversations if c.id.startswith(conversation_id)]
        return matches[0] if len(matches) == 1 else None

    def summaries(self) -> List[ConversationSummary]:
        """Диалоги с сообщениями для списка истории."""
        return [
            ConversationSummary(id=c.id, title=c.title, updated_at=c.updated_at)
            for c in self._conversations
            if c.messages
        ]

    def initialize_model(self) -> bool:
        """Проверить сервер моделей; ошибки сохраняются в status_message."""
        self.status_message = None
        try:
            self.model_ready = self.client.initialize()
            if not self.model_ready:
                self.status_message = "Модели не найдены."
        except IAFrontError as e:
            self.model_ready = False
            self.status_message = f"Ошибка запроса списка моделей: {e.message}"
            logger.warning(self.status_message)
        return self.model_ready

    # ===== CONVERSATIONS =====

    def new_conversation(self) -> StoredConversation:
        conv = self._create_empty()
        self._conversations.insert(0, conv)
        self._persist()
        self.current_id = conv.id
        return conv

    def open(self, conversation_id: str) -> Optional[StoredConversation]:
        conv = self.get(conversation_id)
        if conv is not None:
            self.current_id = conv.id
        return conv

    def delete(self, conversation_id: str) -> bool:
        """
        Удалить диалог. Если диалогов не осталось, создаётся пустой.

        Returns:
            True если диалог был найден
        """
        conv = self.get(conversation_id)
        if conv is None:
            return False
        self._conversations = [c for c in self._conversations if c.id != conv.id]
        if not self._conversations:
            self._conversations.append(self._create_empty())
        self._persist()
        self.current_id = self._conversations[0].id
        return True

    def rename(self, conversation_id: str, new_title: str) -> bool:
        """Переименовать диалог; пустой заголовок игнорируется."""
        title = new_title.strip()
        conv = self.get(conversation_id)
        if not title or conv is None:
            return False
        conv.title = title
        conv.updated_at = datetime.now()
        self._sort()
        self._persist()
        return True

    # ===== MESSAGES =====

    def send(
        self,
        prompt: str,
        on_token: Optional[Callable[[str], None]] = None
    ) -> Optional[ChatMessage]:
        """
        Отправить сообщение в текущий диалог.

        Args:
            prompt: Сообщение пользователя
            on_token: Колбэк для стриминга фрагментов ответа

        Returns:
            Сообщение ассистента или None для пустого ввода
        """
        if not prompt.strip():
            return None

        conv = self.current
        history = list(conv.messages)
        self._append(conv, ChatMessage(role="user", content=prompt))
        self._persist()

        if self.model_ready and self.client.selected_model:
            try:
                reply = self._generate(prompt, history, on_token)
            except IAFrontError as e:
                logger.warning(f"Model request failed: {e.message}")
                reply = f"Ошибка запроса к модели: {e.message}"
        else:
            reply = SELECT_MODEL_NOTICE

        assistant = ChatMessage(role="assistant", content=reply)
        self._append(conv, assistant)
        self._maybe_generate_title(conv, prompt)
        self._persist()
        return assistant

    def _generate(
        self,
        prompt: str,
        history: List[ChatMessage],
        on_token: Optional[Callable[[str], None]]
    ) -> str:
        if on_token is None:
            return self.client.generate_reply(prompt, history)

        parts: List[str] = []
        for token in self.client.stream_reply(prompt, history):
            parts.append(token)
            on_token(token)
        return "".join(parts).strip() or EMPTY_CONTENT_REPLY

    def _maybe_generate_title(self, conv: StoredConversation, first_prompt: str) -> None:
        if conv.title != DEFAULT_TITLE:
            return

        try:
            generated = self.client.generate_conversation_title(first_prompt).strip()
        except IAFrontError as e:
            logger.debug(f"Title generation failed: {e.message}")
            generated = ""

        conv.title = generated or fallback_title(first_prompt)
        conv.updated_at = datetime.now()
        self._sort()

    # ===== INTERNALS =====

    def _append(self, conv: StoredConversation, message: ChatMessage) -> None:
        conv.messages.append(message)
        conv.updated_at = datetime.now()
        self._sort()

    def _sort(self) -> None:
        self._conversations.sort(key=lambda c: c.updated_at, reverse=True)

    def _create_empty(self) -> StoredConversation:
        return StoredConversation(
            id=str(uuid4()),
            title=DEFAULT_TITLE,
            messages=[],
            updated_at=datetime.now()
        )

    def _persist(self) -> None:
        self.config_manager.save_conversations(self._conversations)
