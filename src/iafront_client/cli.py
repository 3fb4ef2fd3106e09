"""
CLI интерфейс для IAFront Client.

Использование:
    iafront render answer.md
    iafront render answer.md --format html
    iafront server set localhost:1234
    iafront models
    iafront chat send "Вопрос"
"""

import sys
import os
import json
import logging
from typing import Any, Dict, Optional

# Windows кодировка
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

import click
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from iafront_client.client import ChatSession, ModelClient
from iafront_client.code_highlighter import highlight_code
from iafront_client.config import get_config_manager
from iafront_client.exceptions import IAFrontError
from iafront_client.markdown_blocks import parse_blocks
from iafront_client.markdown_formatter import format_message
from iafront_client.markdown_inline import annotate_inline
from iafront_client.markdown_models import CodeBlock, TEXT_BLOCK_TYPES
from iafront_client.terminal_renderer import render_message

console = Console()


def get_client(server_url: Optional[str] = None) -> ModelClient:
    """Получить клиент с текущей конфигурацией."""
    config = get_config_manager().get_config()
    url = server_url or config.server_url
    model = config.selected_model if not server_url else None
    return ModelClient(server_url=url, model=model)


def error(message: str) -> None:
    """Вывести ошибку."""
    console.print(f"[red]✗[/red] {message}")


def success(message: str) -> None:
    """Вывести успех."""
    console.print(f"[green]✓[/green] {message}")


def info(message: str) -> None:
    """Вывести информацию."""
    console.print(f"[blue]ℹ[/blue] {message}")


def fail(message: str) -> None:
    """Вывести ошибку и завершить работу с кодом 1."""
    error(message)
    sys.exit(1)


def blocks_as_json(text: str) -> list:
    """Блоки сообщения вместе с inline-разметкой или подсветкой кода."""
    result = []
    for block in parse_blocks(text):
        entry: Dict[str, Any] = {"block": block.model_dump(mode="json")}
        if isinstance(block, TEXT_BLOCK_TYPES):
            runs, links = annotate_inline(block.text)
            entry["runs"] = [run.model_dump(mode="json") for run in runs]
            entry["links"] = [link.model_dump(mode="json") for link in links]
        elif isinstance(block, CodeBlock):
            spans = highlight_code(block.language, block.text)
            entry["highlights"] = [span.model_dump(mode="json") for span in spans]
        result.append(entry)
    return result


@click.group()
@click.option(
    "--server", "-s",
    envvar="IAFRONT_SERVER",
    help="URL сервера моделей (по умолчанию из конфигурации)"
)
@click.option("--verbose", "-v", is_flag=True, help="Подробный лог")
@click.pass_context
def main(ctx, server: Optional[str], verbose: bool):
    """IAFront CLI - клиент для локального сервера языковых моделей."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    ctx.ensure_object(dict)
    ctx.obj["server"] = server


# ===== RENDER COMMANDS =====

@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice(["terminal", "html", "json"]),
    default="terminal",
    help="Формат вывода"
)
def render(source, output_format: str):
    """Отрисовать markdown-сообщение (файл или stdin)."""
    text = source.read()

    if output_format == "html":
        click.echo(format_message(text))
    elif output_format == "json":
        click.echo(json.dumps(blocks_as_json(text), indent=2, ensure_ascii=False))
    else:
        console.print(render_message(text))


@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--model-name", "-m", default="", help="Подпись пузыря")
def preview(source, model_name: str):
    """Показать сообщение в окне (требуется PyQt6)."""
    try:
        from iafront_client.chat_widgets import run_preview
    except ImportError as e:
        fail(escape(f"PyQt6 не установлен: {e}. Установите: pip install 'iafront-client[gui]'"))

    sys.exit(run_preview(source.read(), model_name))


# ===== SERVER COMMANDS =====

@main.group()
def server():
    """Настройки сервера моделей."""
    pass


@server.command("show")
def server_show():
    """Показать текущий сервер и модель."""
    config = get_config_manager().get_config()

    table = Table(title="Конфигурация", show_header=False)
    table.add_column("Параметр", style="cyan")
    table.add_column("Значение")
    table.add_row("Сервер", Text(config.server_url))
    table.add_row("Модель", Text(config.selected_model or "не выбрана"))
    table.add_row("Данные", Text(str(get_config_manager().get_data_dir())))
    console.print(table)


@server.command("set")
@click.argument("url")
def server_set(url: str):
    """Установить адрес сервера (модель сбрасывается)."""
    normalized = get_config_manager().set_server_url(url)
    success(f"Сервер: [bold]{escape(normalized)}[/bold]")


# ===== MODEL COMMANDS =====

@main.command()
@click.pass_context
def models(ctx):
    """Показать модели сервера."""
    try:
        with get_client(ctx.obj.get("server")) as client:
            with console.status("Загрузка списка моделей..."):
                model_ids = client.list_models()
            selected = client.selected_model
    except IAFrontError as e:
        fail(f"Ошибка: {escape(e.message)}")

    if not model_ids:
        info("Модели не найдены")
        return

    table = Table(title="Модели")
    table.add_column("", width=2)
    table.add_column("ID", style="cyan")
    for model_id in model_ids:
        table.add_row("→" if model_id == selected else "", Text(model_id))
    console.print(table)


@main.command()
@click.argument("model_id")
@click.pass_context
def use(ctx, model_id: str):
    """Выбрать модель."""
    try:
        with get_client(ctx.obj.get("server")) as client:
            available = client.list_models()
    except IAFrontError as e:
        fail(f"Ошибка: {escape(e.message)}")

    if model_id not in available:
        fail(escape(f"Модель '{model_id}' не найдена. Доступные: {', '.join(available) or '-'}"))

    get_config_manager().set_selected_model(model_id)
    success(f"Модель: [bold]{escape(model_id)}[/bold]")


# ===== CHAT COMMANDS =====

def get_session(ctx) -> ChatSession:
    return ChatSession(get_client(ctx.obj.get("server")), get_config_manager())


@main.group()
def chat():
    """Работа с диалогами."""
    pass


@chat.command("new")
@click.pass_context
def chat_new(ctx):
    """Создать новый диалог."""
    session = get_session(ctx)
    conv = session.new_conversation()
    success(f"Диалог создан: [dim]{conv.id}[/dim]")


@chat.command("list")
@click.pass_context
def chat_list(ctx):
    """Показать список диалогов."""
    session = get_session(ctx)
    summaries = session.summaries()

    if not summaries:
        info("Нет диалогов")
        return

    table = Table(title="Диалоги")
    table.add_column("", width=2)
    table.add_column("Название", style="cyan")
    table.add_column("Изменён")
    table.add_column("ID", style="dim")

    for s in summaries:
        marker = "→" if s.id == session.current_id else ""
        table.add_row(
            marker,
            Text(s.title),
            s.updated_at.strftime("%Y-%m-%d %H:%M"),
            s.id[:8] + "..."
        )

    console.print(table)


@chat.command("show")
@click.argument("conversation_id", required=False)
@click.option("--tail", "-n", default=10, help="Количество сообщений")
@click.pass_context
def chat_show(ctx, conversation_id: Optional[str], tail: int):
    """Показать сообщения диалога."""
    session = get_session(ctx)
    conv = session.get(conversation_id) if conversation_id else session.current
    if conv is None:
        fail(f"Диалог '{escape(conversation_id or '-')}' не найден")

    console.print(Panel(Text(conv.title, style="bold"), border_style="blue"))

    messages = conv.messages[-tail:] if tail else conv.messages
    for msg in messages:
        if msg.role == "user":
            console.print("\n[bold blue]Вы[/bold blue]")
            console.print(Text(msg.content))
        elif msg.role == "assistant":
            console.print("\n[bold green]Ассистент[/bold green]")
            console.print(render_message(msg.content))
        else:
            console.print(Text.assemble("\n", (f"{msg.role}:", "dim"), " ", msg.content))


@chat.command("send")
@click.argument("message")
@click.option("--no-stream", is_flag=True, help="Отключить стриминг")
@click.pass_context
def chat_send(ctx, message: str, no_stream: bool):
    """Отправить сообщение в текущий диалог."""
    session = get_session(ctx)

    with console.status("Подключение к серверу..."):
        session.initialize_model()
    if session.status_message:
        error(escape(session.status_message))

    console.print(Text.assemble("\n", ("Вы:", "dim"), f" {message}\n"))

    if no_stream:
        with console.status("Ожидание ответа..."):
            reply = session.send(message)
    else:
        accumulated = []
        with Live(render_message(""), console=console, refresh_per_second=8, transient=True) as live:
            def on_token(token: str) -> None:
                accumulated.append(token)
                live.update(render_message("".join(accumulated)))

            reply = session.send(message, on_token=on_token)

    if reply is None:
        fail("Пустое сообщение")

    label = session.client.selected_model or "Ассистент"
    console.print(Panel(render_message(reply.content), title=Text(label), border_style="green"))
    info(f"Диалог: {escape(session.current.title)}")


@chat.command("rename")
@click.argument("conversation_id")
@click.argument("title")
@click.pass_context
def chat_rename(ctx, conversation_id: str, title: str):
    """Переименовать диалог."""
    session = get_session(ctx)
    if not session.rename(conversation_id, title):
        fail("Диалог не найден или пустое название")
    success(f"Диалог переименован: [bold]{escape(title.strip())}[/bold]")


@chat.command("delete")
@click.argument("conversation_id")
@click.pass_context
def chat_delete(ctx, conversation_id: str):
    """Удалить диалог."""
    session = get_session(ctx)
    if not session.delete(conversation_id):
        fail(f"Диалог '{escape(conversation_id or '-')}' не найден")
    success("Диалог удалён")


if __name__ == "__main__":
    main()
