# -*- coding: utf-8 -*-
"""
Типы данных markdown-движка.

Блоки (Block) образуют плоскую последовательность в порядке исходного текста.
Внутри текстовых блоков - стилизованные фрагменты (StyledRun) и ссылки
(LinkAnnotation), внутри блоков кода - спаны подсветки (HighlightSpan).

Все модели неизменяемы и создаются заново при каждом разборе.
"""

from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Node(BaseModel):
    """Базовая неизменяемая модель."""
    model_config = ConfigDict(frozen=True)


# ===== BLOCKS =====

class Heading(_Node):
    """Заголовок (уровни 4-6 приводятся к 3)."""
    kind: Literal["heading"] = "heading"
    level: int = Field(ge=1, le=3)
    text: str


class Paragraph(_Node):
    """Абзац: строки, не подошедшие ни под одно правило."""
    kind: Literal["paragraph"] = "paragraph"
    text: str


class BulletItem(_Node):
    kind: Literal["bullet"] = "bullet"
    text: str


class CheckItem(_Node):
    kind: Literal["check"] = "check"
    checked: bool
    text: str


class NumberedItem(_Node):
    kind: Literal["numbered"] = "numbered"
    index: str
    text: str


class Quote(_Node):
    kind: Literal["quote"] = "quote"
    text: str


class CodeBlock(_Node):
    """Блок кода. language - в нижнем регистре, text - дословно."""
    kind: Literal["code"] = "code"
    language: str = ""
    text: str


class TableBlock(_Node):
    """Таблица: заголовок, разделитель и строки дословно."""
    kind: Literal["table"] = "table"
    text: str


class Divider(_Node):
    kind: Literal["divider"] = "divider"


Block = Annotated[
    Union[
        Heading,
        Paragraph,
        BulletItem,
        CheckItem,
        NumberedItem,
        Quote,
        CodeBlock,
        TableBlock,
        Divider,
    ],
    Field(discriminator="kind"),
]

# Блоки, текст которых проходит через разбор inline-разметки
TEXT_BLOCK_TYPES = (Heading, Paragraph, BulletItem, CheckItem, NumberedItem, Quote)

# Сериализация/валидация списка блоков (JSON вывод CLI)
BLOCK_LIST_ADAPTER = TypeAdapter(List[Block])


# ===== INLINE =====

class StyledRun(_Node):
    """Фрагмент текста с единым набором флагов оформления."""
    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    link: bool = False  # подчёркивание текста ссылки


class LinkAnnotation(_Node):
    """
    Ссылка на диапазон выходного текста.

    Смещения - индексы символов в склейке текстов всех фрагментов
    (после удаления маркеров разметки), end не включается.
    """
    start: int
    end: int
    url: str


# ===== CODE =====

class HighlightKind(str, Enum):
    """Категория подсветки синтаксиса."""
    KEYWORD = "keyword"
    STRING = "string"
    COMMENT = "comment"
    TAG = "tag"
    ATTRIBUTE = "attribute"


class HighlightSpan(_Node):
    """Спан подсветки: смещения в исходном тексте кода."""
    start: int
    end: int
    kind: HighlightKind
