# -*- coding: utf-8 -*-
"""
Подсветка синтаксиса блоков кода.

Проходы выполняются в фиксированном порядке, каждый по исходному тексту
независимо: ключевые слова, строки, комментарии, разметка (xml/html).
Спаны могут пересекаться; при отрисовке более поздний спан перекрывает
более ранний.
"""

import re
from types import MappingProxyType
from typing import List, Optional

from iafront_client.markdown_models import HighlightKind, HighlightSpan

# Псевдоним языка -> каноническое имя
LANGUAGE_ALIASES = MappingProxyType({
    "kt": "kotlin",
    "kts": "kotlin",
    "kotlin": "kotlin",
    "java": "java",
    "js": "javascript",
    "javascript": "javascript",
    "ts": "typescript",
    "typescript": "typescript",
    "py": "python",
    "python": "python",
    "sql": "sql",
    "sh": "bash",
    "bash": "bash",
    "shell": "bash",
    "zsh": "bash",
    "xml": "xml",
    "html": "html",
    "htm": "html",
})

KEYWORD_LANGUAGES = frozenset({
    "kotlin", "java", "javascript", "typescript", "python", "sql", "bash",
})

MARKUP_LANGUAGES = frozenset({"xml", "html"})

KEYWORDS = frozenset({
    "fun", "class", "object", "interface", "data", "val", "var", "if", "else", "when",
    "for", "while", "return", "true", "false", "null", "public", "private", "protected",
    "static", "void", "new", "import", "from", "select", "where", "insert", "update", "delete",
})

_WORD_RE = re.compile(r"\b[A-Za-z_][A-Za-z0-9_]*\b")
_STRING_RE = re.compile(r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'')
_COMMENT_RE = re.compile(r"//.*$|#.*$", re.MULTILINE)
_TAG_RE = re.compile(r"</?[A-Za-z0-9:_-]+")
_ATTRIBUTE_RE = re.compile(r"\b[A-Za-z_:][-A-Za-z0-9_:.]*=")


def resolve_language(language: str) -> Optional[str]:
    """Каноническое имя языка или None, если язык неизвестен."""
    return LANGUAGE_ALIASES.get(language.strip().lower())


def _spans(pattern: re.Pattern, code: str, kind: HighlightKind) -> List[HighlightSpan]:
    return [HighlightSpan(start=m.start(), end=m.end(), kind=kind) for m in pattern.finditer(code)]


def highlight_code(language: str, code: str) -> List[HighlightSpan]:
    """
    Построить спаны подсветки для кода.

    Строки и комментарии подсвечиваются для любого языка (в том числе
    пустого), ключевые слова и теги - только для известных языков.

    Args:
        language: Тег языка из блока кода (регистр не важен)
        code: Текст кода

    Returns:
        Спаны в порядке применения
    """
    canonical = resolve_language(language)
    spans: List[HighlightSpan] = []

    if canonical in KEYWORD_LANGUAGES:
        spans.extend(
            HighlightSpan(start=m.start(), end=m.end(), kind=HighlightKind.KEYWORD)
            for m in _WORD_RE.finditer(code)
            if m.group(0).lower() in KEYWORDS
        )

    spans.extend(_spans(_STRING_RE, code, HighlightKind.STRING))
    spans.extend(_spans(_COMMENT_RE, code, HighlightKind.COMMENT))

    if canonical in MARKUP_LANGUAGES:
        spans.extend(_spans(_TAG_RE, code, HighlightKind.TAG))
        spans.extend(_spans(_ATTRIBUTE_RE, code, HighlightKind.ATTRIBUTE))

    return spans
