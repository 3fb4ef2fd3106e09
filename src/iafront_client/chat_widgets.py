# -*- coding: utf-8 -*-
"""
Виджеты чата: пузыри сообщений с разметкой и обработкой ссылок.
"""

import sys
import html
import logging
import traceback

from PyQt6.QtWidgets import (
    QApplication, QFrame, QHBoxLayout, QScrollArea, QTextBrowser, QVBoxLayout, QWidget
)
from PyQt6.QtCore import Qt, QUrl
from PyQt6.QtGui import QFont, QDesktopServices

from iafront_client.markdown_formatter import format_message

logger = logging.getLogger(__name__)

MIN_BUBBLE_HEIGHT = 40
MAX_BUBBLE_HEIGHT = 2000

_BUBBLE_STYLES = {
    "user": "background: #e0e0e0; color: #333; border: none;",
    "assistant": "background: #ffffff; color: #333; border: 1px solid #e0e0e0;",
}
_LABEL_STYLE = "font-size: 9px; font-weight: bold; margin-bottom: 6px;"


def install_exception_hook():
    """Логировать необработанные исключения из обработчиков Qt."""
    def _exception_hook(exc_type, exc_value, exc_tb):
        details = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        logger.critical(f"Unhandled exception:\n{details}")
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = _exception_hook


def open_link(url: QUrl) -> bool:
    """
    Открыть ссылку во внешнем приложении.

    Ошибки открытия только логируются и не пробрасываются.

    Returns:
        True если ссылка открыта
    """
    try:
        opened = QDesktopServices.openUrl(url)
    except Exception as e:
        logger.warning(f"Failed to open link {url.toString()}: {e}")
        return False
    if not opened:
        logger.warning(f"No handler for link {url.toString()}")
    return opened


def _bubble_html(role: str, content: str, label: str) -> str:
    if role == "user":
        return (
            f'<div style="{_LABEL_STYLE} color: #666; text-align: right;">Вы</div>'
            f'<div style="text-align: right;">{format_message(content)}</div>'
        )
    return (
        f'<div style="{_LABEL_STYLE} color: #009933;">{html.escape(label)}</div>'
        f'<div>{format_message(content)}</div>'
    )


class MessageBubbleWidget(QFrame):
    """Пузырь сообщения: справа для пользователя, слева для ассистента."""

    def __init__(self, role: str, content: str, model_name: str = "", parent=None):
        super().__init__(parent)
        self._resizing = False

        browser = QTextBrowser()
        # Ссылки открываются через open_link, а не внутри виджета
        browser.setOpenLinks(False)
        browser.setOpenExternalLinks(False)
        browser.anchorClicked.connect(open_link)
        browser.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        browser.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        browser.setFont(QFont("Segoe UI", 11))
        style = _BUBBLE_STYLES.get(role, _BUBBLE_STYLES["assistant"])
        browser.setStyleSheet(
            f"QTextBrowser {{ {style} border-radius: 18px; padding: 12px 16px; }}"
        )
        browser.setHtml(_bubble_html(role, content, model_name or "LLM"))
        self._browser = browser

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 5, 0, 5)
        layout.setSpacing(0)
        if role == "user":
            layout.addStretch(2)
            layout.addWidget(browser, 8)
        else:
            layout.addWidget(browser, 8)
            layout.addStretch(2)

        self._fit_height()

    def _fit_height(self):
        """Высота по содержимому; очень длинные сообщения получают прокрутку."""
        document = self._browser.document()
        document.setTextWidth(self._browser.viewport().width() or 400)
        height = int(document.size().height()) + 30
        if height > MAX_BUBBLE_HEIGHT:
            self._browser.setMinimumHeight(60)
            self._browser.setMaximumHeight(MAX_BUBBLE_HEIGHT)
            self._browser.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        else:
            self._browser.setFixedHeight(max(height, MIN_BUBBLE_HEIGHT))

    def resizeEvent(self, event):
        super().resizeEvent(event)
        # setFixedHeight снова вызывает resizeEvent
        if self._resizing:
            return
        self._resizing = True
        try:
            self._fit_height()
        finally:
            self._resizing = False


def run_preview(text: str, model_name: str = "") -> int:
    """
    Показать сообщение ассистента в отдельном окне.

    Returns:
        Код завершения Qt приложения
    """
    install_exception_hook()

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("IAFront Preview")
    app.setStyle("Fusion")

    container = QWidget()
    column = QVBoxLayout(container)
    column.addWidget(MessageBubbleWidget("assistant", text, model_name))
    column.addStretch(1)

    window = QScrollArea()
    window.setWidgetResizable(True)
    window.setWidget(container)
    window.setWindowTitle("IAFront Preview")
    window.resize(720, 600)
    window.show()

    return app.exec()
