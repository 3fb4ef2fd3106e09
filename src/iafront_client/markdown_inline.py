# -*- coding: utf-8 -*-
"""
Inline-разметка: **жирный**, *курсив*, `код`, [ссылки](url) и голые URL.

Один проход слева направо с явным курсором. Незакрытый маркер
становится обычным символом, и разбор продолжается со следующего
символа, поэтому более поздняя корректная пара всё ещё распознаётся.
"""

import re
from typing import List, Tuple

from iafront_client.markdown_models import LinkAnnotation, StyledRun

_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_BARE_URL_RE = re.compile(r"https?://\S+")
_URL_TRAILING_CHARS = ").,;"


class _RunBuilder:
    """Накапливает фрагменты, склеивая соседние обычные символы."""

    def __init__(self):
        self.runs: List[StyledRun] = []
        self.links: List[LinkAnnotation] = []
        self.length = 0
        self._literal: List[str] = []

    def literal(self, char: str) -> None:
        self._literal.append(char)
        self.length += 1

    def styled(self, text: str, **flags) -> None:
        self._flush_literal()
        self.runs.append(StyledRun(text=text, **flags))
        self.length += len(text)

    def link(self, text: str, url: str) -> None:
        start = self.length
        self.styled(text, link=True)
        self.links.append(LinkAnnotation(start=start, end=self.length, url=url))

    def _flush_literal(self) -> None:
        if self._literal:
            self.runs.append(StyledRun(text="".join(self._literal)))
            self._literal = []

    def build(self) -> Tuple[List[StyledRun], List[LinkAnnotation]]:
        self._flush_literal()
        return self.runs, self.links


def annotate_inline(text: str) -> Tuple[List[StyledRun], List[LinkAnnotation]]:
    """
    Разобрать inline-разметку одной строки/абзаца.

    Args:
        text: Текст блока (без блочных маркеров)

    Returns:
        (фрагменты, ссылки). Склейка текстов фрагментов даёт видимый текст,
        смещения ссылок указывают в этот видимый текст.
    """
    out = _RunBuilder()
    i = 0
    n = len(text)

    while i < n:
        if text.startswith("**", i):
            end = text.find("**", i + 2)
            if end > i + 2:
                out.styled(text[i + 2:end], bold=True)
                i = end + 2
                continue

        if text.startswith("*", i) and not text.startswith("**", i):
            end = text.find("*", i + 1)
            if end > i + 1:
                out.styled(text[i + 1:end], italic=True)
                i = end + 1
                continue

        if text[i] == "`":
            end = text.find("`", i + 1)
            if end > i + 1:
                out.styled(text[i + 1:end], code=True)
                i = end + 1
                continue

        if text[i] == "[":
            match = _LINK_RE.match(text, i)
            if match:
                out.link(match.group(1), match.group(2))
                i = match.end()
                continue

        if text[i] == "h":
            match = _BARE_URL_RE.match(text, i)
            if match:
                url = match.group(0).rstrip(_URL_TRAILING_CHARS)
                out.link(url, url)
                # Хвостовая пунктуация поглощается вместе с URL и в текст не попадает
                i = match.end()
                continue

        out.literal(text[i])
        i += 1

    return out.build()


def plain_text(runs: List[StyledRun]) -> str:
    """Видимый текст фрагментов."""
    return "".join(run.text for run in runs)
