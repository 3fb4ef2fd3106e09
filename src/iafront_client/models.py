"""
Pydantic модели для API клиента и локального хранения.

API модели соответствуют OpenAI-совместимому серверу
(/v1/models, /v1/chat/completions).
"""

from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field


ChatRole = Literal["user", "assistant", "system"]


# ===== MODELS API =====

class ModelInfo(BaseModel):
    """Модель, доступная на сервере."""
    id: str
    object: str = "model"
    owned_by: Optional[str] = None


class ModelListResponse(BaseModel):
    """Ответ GET /v1/models."""
    object: str = "list"
    data: List[ModelInfo] = Field(default_factory=list)


# ===== CHAT COMPLETIONS API =====

class ChatMessage(BaseModel):
    """Сообщение диалога."""
    role: ChatRole
    content: str


class ChatCompletionRequest(BaseModel):
    """Тело запроса POST /v1/chat/completions."""
    model: str
    messages: List[ChatMessage]
    stream: bool = False


class CompletionMessage(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class CompletionChoice(BaseModel):
    index: int = 0
    message: Optional[CompletionMessage] = None
    delta: Optional[CompletionMessage] = None  # только при стриминге
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """Ответ (или чанк стриминга) /v1/chat/completions."""
    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[CompletionChoice] = Field(default_factory=list)


# ===== HISTORY MODELS =====

class StoredConversation(BaseModel):
    """Диалог в локальной истории."""
    id: str
    title: str
    messages: List[ChatMessage] = Field(default_factory=list)
    updated_at: datetime


class ConversationSummary(BaseModel):
    """Краткая информация о диалоге для списка."""
    id: str
    title: str
    updated_at: datetime


# ===== LOCAL CONFIG MODELS =====

class ClientConfig(BaseModel):
    """Конфигурация клиента."""
    server_url: str
    selected_model: Optional[str] = None
    data_dir: Optional[str] = Field(
        default=None,
        description="Папка для локальных данных (история диалогов). None = ~/.iafront/data"
    )
