# -*- coding: utf-8 -*-
"""
Markdown → HTML formatter for QTextBrowser.

Разбирает сообщение движком (блоки, inline-разметка, подсветка кода)
и собирает HTML, совместимый с rich text виджетами Qt.
"""

import html
from typing import Dict, List, Mapping, Optional

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
    LinkAnnotation,
    NumberedItem,
    Paragraph,
    Quote,
    StyledRun,
    TableBlock,
)


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------

DEFAULT_HIGHLIGHT_THEME: Mapping[HighlightKind, str] = {
    HighlightKind.KEYWORD: "color:#80cbc4; font-weight:600;",
    HighlightKind.STRING: "color:#ffcc80;",
    HighlightKind.COMMENT: "color:#90a4ae; font-style:italic;",
    HighlightKind.TAG: "color:#81d4fa; font-weight:500;",
    HighlightKind.ATTRIBUTE: "color:#a5d6a7;",
}

_HEADING_SIZES = {1: 20, 2: 17, 3: 15}

_INLINE_CODE_STYLE = (
    "background:#f0f0f0; padding:2px 5px; border-radius:3px; "
    "font-family:Consolas,'Courier New',monospace; font-size:12px; "
    "border:1px solid #ddd;"
)
_LINK_STYLE = "color:#2980b9; text-decoration:underline;"
_CODE_BLOCK_STYLE = (
    "background:#2d2d2d; color:#f8f8f2; padding:10px 12px; "
    "border-radius:6px; font-family:Consolas,'Courier New',monospace; "
    "font-size:12px; white-space:pre-wrap; margin:8px 0; "
    "border:1px solid #555;"
)
_QUOTE_STYLE = (
    "border-left:3px solid #ccc; padding-left:12px; "
    "color:#555; margin:6px 0; font-style:italic;"
)
_ITEM_STYLE = "margin:2px 0 2px 12px;"
_TABLE_STYLE = (
    "border-collapse:collapse; border:1px solid #ccc; margin:8px 0; width:auto;"
)
_TABLE_CELL_STYLE = "border:1px solid #ccc; padding:6px 10px;"
_TABLE_HEADER_STYLE = (
    "border:1px solid #ccc; padding:6px 10px; font-weight:bold; background-color:#f0f0f0;"
)
_HR = '<hr style="border:none; border-top:1px solid #ccc; margin:10px 0;">'


# ---------------------------------------------------------------------------
# Inline elements
# ---------------------------------------------------------------------------

def _escape(text: str) -> str:
    return html.escape(text, quote=False).replace("\n", "<br>")


def runs_to_html(runs: List[StyledRun], links: List[LinkAnnotation]) -> str:
    """Собрать HTML из фрагментов; ссылки находятся по смещениям в видимом тексте."""
    urls: Dict[int, str] = {link.start: link.url for link in links}
    parts: List[str] = []
    offset = 0

    for run in runs:
        chunk = _escape(run.text)
        if run.code:
            chunk = f'<code style="{_INLINE_CODE_STYLE}">{chunk}</code>'
        if run.italic:
            chunk = f"<i>{chunk}</i>"
        if run.bold:
            chunk = f"<b>{chunk}</b>"
        if run.link and offset in urls:
            href = html.escape(urls[offset], quote=True)
            chunk = f'<a href="{href}" style="{_LINK_STYLE}">{chunk}</a>'
        parts.append(chunk)
        offset += len(run.text)

    return "".join(parts)


def format_inline(text: str) -> str:
    """Inline-разметка одной строки → HTML."""
    runs, links = annotate_inline(text)
    return runs_to_html(runs, links)


# ---------------------------------------------------------------------------
# Code blocks
# ---------------------------------------------------------------------------

def _format_code_block(block: CodeBlock, theme: Mapping[HighlightKind, str]) -> str:
    """Блок кода с подсветкой: более поздний спан перекрывает ранний."""
    code = block.text
    kinds: List[Optional[HighlightKind]] = [None] * len(code)
    for span in highlight_code(block.language, code):
        for pos in range(span.start, span.end):
            kinds[pos] = span.kind

    parts: List[str] = []
    start = 0
    for pos in range(1, len(code) + 1):
        if pos < len(code) and kinds[pos] == kinds[start]:
            continue
        segment = html.escape(code[start:pos], quote=False)
        kind = kinds[start]
        if kind is not None and theme.get(kind):
            segment = f'<span style="{theme[kind]}">{segment}</span>'
        parts.append(segment)
        start = pos

    lang_label = (
        f'<div style="font-size:9px; color:#999; margin-bottom:4px;">'
        f'{html.escape(block.language)}</div>'
        if block.language else ''
    )
    return f'<div style="{_CODE_BLOCK_STYLE}">{lang_label}{"".join(parts)}</div>'


# ---------------------------------------------------------------------------
# Table parsing
# ---------------------------------------------------------------------------

def _split_cells(line: str) -> List[str]:
    return [c.strip() for c in line.strip().strip('|').split('|')]


def _format_table(block: TableBlock) -> str:
    """Convert markdown pipe table to HTML table."""
    lines = block.text.split('\n')
    header, separator, rows = lines[0], lines[1], lines[2:]

    # Выравнивание из строки-разделителя
    alignments = []
    for cell in _split_cells(separator):
        if cell.startswith(':') and cell.endswith(':'):
            alignments.append('center')
        elif cell.endswith(':'):
            alignments.append('right')
        else:
            alignments.append('left')

    def _row(line: str, style: str) -> str:
        cells = []
        for ci, cell in enumerate(_split_cells(line)):
            align = alignments[ci] if ci < len(alignments) else 'left'
            cells.append(f'<td style="{style} text-align:{align};">{format_inline(cell)}</td>')
        return '<tr>' + ''.join(cells) + '</tr>'

    html_rows = [_row(header, _TABLE_HEADER_STYLE)]
    html_rows.extend(_row(line, _TABLE_CELL_STYLE) for line in rows)
    return (
        f'<table border="1" cellpadding="6" cellspacing="0" style="{_TABLE_STYLE}">'
        + ''.join(html_rows)
        + '</table>'
    )


# ---------------------------------------------------------------------------
# Block-level elements
# ---------------------------------------------------------------------------

def format_block(block: Block, theme: Mapping[HighlightKind, str] = DEFAULT_HIGHLIGHT_THEME) -> str:
    """Один блок → HTML."""
    if isinstance(block, Heading):
        size = _HEADING_SIZES[block.level]
        return (
            f'<div style="font-size:{size}px; font-weight:bold; '
            f'margin:10px 0 6px 0; color:#222;">{format_inline(block.text)}</div>'
        )
    if isinstance(block, Paragraph):
        return f'<div style="margin:4px 0;">{format_inline(block.text)}</div>'
    if isinstance(block, BulletItem):
        return f'<div style="{_ITEM_STYLE}">• {format_inline(block.text)}</div>'
    if isinstance(block, CheckItem):
        mark = "☑" if block.checked else "☐"
        return f'<div style="{_ITEM_STYLE}">{mark} {format_inline(block.text)}</div>'
    if isinstance(block, NumberedItem):
        return f'<div style="{_ITEM_STYLE}">{block.index}. {format_inline(block.text)}</div>'
    if isinstance(block, Quote):
        return f'<div style="{_QUOTE_STYLE}">{format_inline(block.text)}</div>'
    if isinstance(block, CodeBlock):
        return _format_code_block(block, theme)
    if isinstance(block, TableBlock):
        return _format_table(block)
    if isinstance(block, Divider):
        return _HR
    raise TypeError(f"Unknown block type: {type(block).__name__}")


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def format_message(
    text: str,
    theme: Optional[Mapping[HighlightKind, str]] = None
) -> str:
    """
    Convert markdown text to HTML suitable for QTextBrowser.

    Handles: code blocks with highlighting, tables, headers, blockquotes,
    bullet/check/numbered items, horizontal rules, bold, italic,
    inline code, links.

    Args:
        text: Текст сообщения
        theme: Стили подсветки по категориям (по умолчанию DEFAULT_HIGHLIGHT_THEME)
    """
    if not text:
        return ''

    theme = theme if theme is not None else DEFAULT_HIGHLIGHT_THEME
    return ''.join(format_block(block, theme) for block in parse_blocks(text))
