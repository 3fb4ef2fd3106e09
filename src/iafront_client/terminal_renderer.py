# -*- coding: utf-8 -*-
"""
Отрисовка сообщений в терминале через rich.
"""

from typing import List, Mapping, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.rule import Rule
from rich.style import Style
from rich.text import Text

from iafront_client.code_highlighter import highlight_code
from iafront_client.markdown_blocks import parse_blocks
from iafront_client.markdown_inline import annotate_inline
from iafront_client.markdown_models import (
    Block,
    BulletItem,
    CheckItem,
    CodeBlock,
    Divider,
    Heading,
    HighlightKind,
    NumberedItem,
    Paragraph,
    Quote,
    TableBlock,
)

DEFAULT_TERMINAL_THEME: Mapping[HighlightKind, str] = {
    HighlightKind.KEYWORD: "bold #80cbc4",
    HighlightKind.STRING: "#ffcc80",
    HighlightKind.COMMENT: "italic #90a4ae",
    HighlightKind.TAG: "#81d4fa",
    HighlightKind.ATTRIBUTE: "#a5d6a7",
}

_HEADING_STYLES = {1: "bold underline", 2: "bold", 3: "bold dim"}
_INLINE_CODE_STYLE = "bold cyan"


def inline_text(text: str, base_style: str = "") -> Text:
    """Inline-разметка → rich Text; смещения ссылок совпадают с позициями в Text."""
    runs, links = annotate_inline(text)
    result = Text(style=base_style)
    for run in runs:
        styles = []
        if run.bold:
            styles.append("bold")
        if run.italic:
            styles.append("italic")
        if run.code:
            styles.append(_INLINE_CODE_STYLE)
        if run.link:
            styles.append("underline")
        result.append(run.text, style=" ".join(styles))
    for link in links:
        result.stylize(Style(link=link.url), link.start, link.end)
    return result


def code_text(block: CodeBlock, theme: Mapping[HighlightKind, str] = DEFAULT_TERMINAL_THEME) -> Text:
    """Код с подсветкой; спаны применяются по порядку, поздние перекрывают ранние."""
    result = Text(block.text)
    for span in highlight_code(block.language, block.text):
        style = theme.get(span.kind)
        if style:
            result.stylize(style, span.start, span.end)
    return result


def _prefixed(prefix: str, text: str, base_style: str = "") -> Text:
    return Text.assemble(Text(prefix, style="bold"), inline_text(text, base_style))


def render_block(block: Block, theme: Mapping[HighlightKind, str] = DEFAULT_TERMINAL_THEME) -> RenderableType:
    """Один блок → rich renderable."""
    if isinstance(block, Heading):
        return inline_text(block.text, _HEADING_STYLES[block.level])
    if isinstance(block, Paragraph):
        return inline_text(block.text)
    if isinstance(block, BulletItem):
        return _prefixed("• ", block.text)
    if isinstance(block, CheckItem):
        return _prefixed("☑ " if block.checked else "☐ ", block.text)
    if isinstance(block, NumberedItem):
        return _prefixed(f"{block.index}. ", block.text)
    if isinstance(block, Quote):
        return _prefixed("▌ ", block.text, "italic")
    if isinstance(block, CodeBlock):
        # Тег языка - текст сообщения, не rich-разметка
        title = Text(block.language) if block.language else None
        return Panel(code_text(block, theme), title=title, title_align="left", border_style="dim")
    if isinstance(block, TableBlock):
        return Text(block.text, style="cyan")
    if isinstance(block, Divider):
        return Rule(style="dim")
    raise TypeError(f"Unknown block type: {type(block).__name__}")


def render_message(text: str, theme: Optional[Mapping[HighlightKind, str]] = None) -> Group:
    """
    Markdown-текст сообщения → группа rich renderables для Console.print.

    Args:
        text: Текст сообщения
        theme: Стили подсветки кода по категориям
    """
    theme = theme if theme is not None else DEFAULT_TERMINAL_THEME
    renderables: List[RenderableType] = [render_block(block, theme) for block in parse_blocks(text)]
    return Group(*renderables)
