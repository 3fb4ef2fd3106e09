# -*- coding: utf-8 -*-
"""
Разбор сообщения на блоки.

Построчный проход с одним курсором. Правила проверяются сверху вниз,
срабатывает первое подходящее; порядок правил важен (чек-лист раньше
маркированного списка, разделитель раньше списка и т.д.).
"""

import logging
import re
from typing import List

from iafront_client.markdown_models import (
    Block,
    BulletItem,
    CheckItem,
    CodeBlock,
    Divider,
    Heading,
    NumberedItem,
    Paragraph,
    Quote,
    TableBlock,
)

logger = logging.getLogger(__name__)

FENCE = "```"
MAX_HEADING_LEVEL = 3
# Ограничение просмотра вперёд для таблиц
MAX_TABLE_LINES = 500

_DIVIDERS = frozenset({"---", "***", "___"})

_HEADING_RE = re.compile(r"^(#{1,6})\s+.+$")
_CHECK_RE = re.compile(r"^[-*+]\s+\[( |x|X)]\s+(.+)$")
_BULLET_RE = re.compile(r"^[-*+]\s+.+$")
_NUMBERED_RE = re.compile(r"^([0-9]+)\.\s+(.+)$")
_SEPARATOR_CHARS_RE = re.compile(r"[|:\-\s]")


def looks_like_table_row(line: str) -> bool:
    """
    Строка-кандидат в таблицу: содержит символ '|'.

    Одного символа достаточно, чтобы строки "col1|col2", "---|---", "v1|v2"
    образовали таблицу; от прозы с одиночным '|' таблицу отличает строка-разделитель.
    """
    return "|" in line


def looks_like_table_separator(line: str) -> bool:
    """Разделитель заголовка таблицы: только '|', ':', '-' и пробелы, есть хотя бы один '-'."""
    return "-" in line and not _SEPARATOR_CHARS_RE.sub("", line)


def _collect_table(lines: List[str], start: int) -> List[str]:
    """Собрать подряд идущие строки-кандидаты начиная с start."""
    collected: List[str] = []
    j = start
    while j < len(lines) and looks_like_table_row(lines[j].strip()):
        if len(collected) >= MAX_TABLE_LINES:
            logger.debug(f"Table lookahead capped at {MAX_TABLE_LINES} lines (line {start})")
            break
        collected.append(lines[j].rstrip())
        j += 1
    return collected


def parse_blocks(text: str) -> List[Block]:
    """
    Разобрать markdown-текст сообщения в последовательность блоков.

    Функция тотальная: любой вход даёт результат, ошибок нет.
    Незакрытый блок кода продолжается до конца текста.

    Args:
        text: Исходный текст сообщения

    Returns:
        Список блоков в порядке следования в тексте
    """
    lines = text.replace("\r\n", "\n").split("\n")
    blocks: List[Block] = []
    paragraph: List[str] = []

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append(Paragraph(text="\n".join(paragraph).strip()))
            paragraph.clear()

    i = 0
    while i < len(lines):
        line = lines[i].rstrip()
        trimmed = line.strip()

        if not trimmed:
            flush_paragraph()
            i += 1
            continue

        # Блок кода: строки берутся дословно до закрывающего ``` или конца текста
        if trimmed.startswith(FENCE):
            flush_paragraph()
            language = trimmed[len(FENCE):].strip().lower()
            i += 1
            code_lines: List[str] = []
            while i < len(lines) and not lines[i].strip().startswith(FENCE):
                code_lines.append(lines[i])
                i += 1
            if i < len(lines):
                i += 1
            blocks.append(CodeBlock(language=language, text="\n".join(code_lines)))
            continue

        heading = _HEADING_RE.match(trimmed)
        if heading:
            flush_paragraph()
            level = min(len(heading.group(1)), MAX_HEADING_LEVEL)
            blocks.append(Heading(level=level, text=trimmed.lstrip("#").strip()))
            i += 1
            continue

        if trimmed in _DIVIDERS:
            flush_paragraph()
            blocks.append(Divider())
            i += 1
            continue

        if trimmed.startswith(">"):
            flush_paragraph()
            blocks.append(Quote(text=trimmed[1:].strip()))
            i += 1
            continue

        check = _CHECK_RE.match(trimmed)
        if check:
            flush_paragraph()
            blocks.append(CheckItem(
                checked=check.group(1).lower() == "x",
                text=check.group(2),
            ))
            i += 1
            continue

        if _BULLET_RE.match(trimmed):
            flush_paragraph()
            blocks.append(BulletItem(text=trimmed[1:].strip()))
            i += 1
            continue

        numbered = _NUMBERED_RE.match(trimmed)
        if numbered:
            flush_paragraph()
            blocks.append(NumberedItem(index=numbered.group(1), text=numbered.group(2)))
            i += 1
            continue

        if looks_like_table_row(trimmed):
            table_lines = _collect_table(lines, i)
            if len(table_lines) >= 2 and looks_like_table_separator(table_lines[1]):
                flush_paragraph()
                blocks.append(TableBlock(text="\n".join(table_lines)))
                i += len(table_lines)
                continue
            # Не таблица - строка уходит в абзац как обычный текст

        paragraph.append(line)
        i += 1

    flush_paragraph()
    return blocks
