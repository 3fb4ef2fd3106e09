"""
IAFront Python Client.

Markdown-движок для сообщений чата и клиент для локального
OpenAI-совместимого сервера языковых моделей.
"""

from iafront_client.markdown_blocks import parse_blocks
from iafront_client.markdown_inline import annotate_inline
from iafront_client.code_highlighter import highlight_code
from iafront_client.markdown_formatter import format_message
from iafront_client.markdown_models import (
    Block,
    Heading,
    Paragraph,
    BulletItem,
    CheckItem,
    NumberedItem,
    Quote,
    CodeBlock,
    TableBlock,
    Divider,
    StyledRun,
    LinkAnnotation,
    HighlightKind,
    HighlightSpan,
)
from iafront_client.client import ModelClient, ChatSession
from iafront_client.models import ChatMessage, StoredConversation
from iafront_client.exceptions import (
    IAFrontError,
    APIError,
    NotFoundError,
    ServerError,
    ServerUnavailableError,
    ModelNotSelectedError,
)

__version__ = "1.0.0"

__all__ = [
    # Markdown engine
    "parse_blocks",
    "annotate_inline",
    "highlight_code",
    "format_message",
    # Engine models
    "Block",
    "Heading",
    "Paragraph",
    "BulletItem",
    "CheckItem",
    "NumberedItem",
    "Quote",
    "CodeBlock",
    "TableBlock",
    "Divider",
    "StyledRun",
    "LinkAnnotation",
    "HighlightKind",
    "HighlightSpan",
    # Client
    "ModelClient",
    "ChatSession",
    "ChatMessage",
    "StoredConversation",
    # Exceptions
    "IAFrontError",
    "APIError",
    "NotFoundError",
    "ServerError",
    "ServerUnavailableError",
    "ModelNotSelectedError",
]
