"""Tests for the model client and chat session against a mocked server."""

import json

import httpx
import pytest

from iafront_client.client import (
    DEFAULT_TITLE,
    EMPTY_CONTENT_REPLY,
    NO_CHOICES_REPLY,
    NO_MODEL_REPLY,
    SELECT_MODEL_NOTICE,
    ChatSession,
    ModelClient,
    fallback_title,
)
from iafront_client.config import ConfigManager
from iafront_client.exceptions import (
    APIError,
    ModelNotSelectedError,
    NotFoundError,
    ServerError,
    ServerUnavailableError,
    ValidationError,
)
from iafront_client.models import ChatMessage


def completion(content):
    return {"id": "c", "model": "m", "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


def sse_body(*chunks):
    lines = [f"data: {json.dumps(chunk)}\n\n" for chunk in chunks]
    return "".join(lines) + "data: [DONE]\n\n"


class FakeServer:
    """OpenAI-compatible server stub for httpx.MockTransport."""

    def __init__(self, models=("m1", "m2"), reply="Ответ", title='"Тема разговора."', tokens=("Hel", "lo")):
        self.models = list(models)
        self.reply = reply
        self.title = title
        self.tokens = list(tokens)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/v1/models":
            return httpx.Response(200, json={"object": "list", "data": [{"id": m} for m in self.models]})

        body = json.loads(request.content)
        if body["messages"][0]["role"] == "system":
            return httpx.Response(200, json=completion(self.title))
        if body["stream"]:
            chunks = [{"choices": [{"index": 0, "delta": {"role": "assistant"}}]}]
            chunks += [{"choices": [{"index": 0, "delta": {"content": t}}]} for t in self.tokens]
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=sse_body(*chunks).encode("utf-8"),
            )
        return httpx.Response(200, json=completion(self.reply))

    def chat_payloads(self):
        return [json.loads(r.content) for r in self.requests if r.url.path == "/v1/chat/completions"]


def make_client(handler, model=None):
    return ModelClient("localhost:1234", model=model, transport=httpx.MockTransport(handler))


def failing(status, body=None):
    def handler(request):
        if body is None:
            return httpx.Response(status, text="boom")
        return httpx.Response(status, json=body)
    return handler


# ===== MODEL CLIENT =====

def test_server_url_normalized():
    """Test missing scheme is added."""
    client = make_client(FakeServer())
    assert client.server_url == "http://localhost:1234"


def test_list_models_skips_blank_ids():
    """Test model ids are trimmed and blanks dropped."""
    client = make_client(FakeServer(models=(" a ", "", "b")))
    assert client.list_models() == ["a", "b"]


def test_initialize_selects_first_model():
    """Test first model is chosen when none is selected."""
    client = make_client(FakeServer())
    assert client.initialize() is True
    assert client.selected_model == "m1"


def test_initialize_keeps_listed_model():
    """Test previously selected model is kept."""
    client = make_client(FakeServer(), model="m2")
    client.initialize()
    assert client.selected_model == "m2"


def test_initialize_replaces_missing_model():
    """Test stale model is replaced by the first one."""
    client = make_client(FakeServer(), model="gone")
    client.initialize()
    assert client.selected_model == "m1"


def test_initialize_without_models():
    """Test empty model list."""
    client = make_client(FakeServer(models=()))
    assert client.initialize() is False
    assert client.selected_model is None


def test_set_server_url_resets_model():
    """Test switching servers clears the model."""
    client = make_client(FakeServer(), model="m1")
    client.set_server_url("https://other/")
    assert client.server_url == "https://other"
    assert client.selected_model is None


def test_generate_reply_without_model_makes_no_request():
    """Test the no-model reply."""
    server = FakeServer()
    client = make_client(server)
    assert client.generate_reply("hi") == NO_MODEL_REPLY
    assert server.requests == []


def test_generate_reply_sends_history():
    """Test request payload and stripped content."""
    server = FakeServer(reply="  готово \n")
    client = make_client(server, model="m1")
    history = [ChatMessage(role="user", content="q1"), ChatMessage(role="assistant", content="a1")]

    assert client.generate_reply("q2", history) == "готово"

    payload = server.chat_payloads()[0]
    assert payload["model"] == "m1"
    assert payload["stream"] is False
    assert [m["content"] for m in payload["messages"]] == ["q1", "a1", "q2"]


def test_generate_reply_no_choices():
    """Test empty choices list."""
    client = make_client(lambda r: httpx.Response(200, json={"choices": []}), model="m")
    assert client.generate_reply("hi") == NO_CHOICES_REPLY


def test_generate_reply_blank_content():
    """Test blank content."""
    client = make_client(FakeServer(reply="   "), model="m")
    assert client.generate_reply("hi") == EMPTY_CONTENT_REPLY


def test_stream_reply_yields_deltas():
    """Test streamed tokens until the done marker."""
    server = FakeServer(tokens=("При", "вет", "!"))
    client = make_client(server, model="m1")
    assert list(client.stream_reply("hi")) == ["При", "вет", "!"]
    assert server.chat_payloads()[0]["stream"] is True


def test_stream_reply_stops_at_done():
    """Test events after [DONE] are ignored."""
    body = sse_body({"choices": [{"delta": {"content": "a"}}]}) + "data: {\"choices\": [{\"delta\": {\"content\": \"b\"}}]}\n\n"

    def handler(request):
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body.encode())

    client = make_client(handler, model="m")
    assert list(client.stream_reply("x")) == ["a"]


def test_stream_reply_requires_model():
    """Test streaming without a model."""
    client = make_client(FakeServer())
    with pytest.raises(ModelNotSelectedError):
        list(client.stream_reply("x"))


def test_stream_reply_http_error():
    """Test error status on the streaming endpoint."""
    client = make_client(failing(503, {"error": {"message": "busy", "type": "overloaded"}}), model="m")
    with pytest.raises(ServerError) as exc_info:
        list(client.stream_reply("x"))
    assert exc_info.value.status_code == 503
    assert "busy" in exc_info.value.message


def test_generate_conversation_title_cleaned():
    """Test quotes and final period are removed."""
    server = FakeServer(title='"Погода в Москве."\nлишнее')
    client = make_client(server, model="m1")
    assert client.generate_conversation_title("Какая погода?") == "Погода в Москве"

    payload = server.chat_payloads()[0]
    assert payload["messages"][0]["role"] == "system"
    assert payload["messages"][1] == {"role": "user", "content": "Какая погода?"}


def test_generate_conversation_title_without_model():
    """Test title from the prompt prefix when no model is selected."""
    client = make_client(FakeServer())
    prompt = "  " + "x" * 50
    assert client.generate_conversation_title(prompt) == "x" * 42


def test_fallback_title():
    """Test prompt prefix and default title."""
    assert fallback_title("  short  ") == "short"
    assert fallback_title("   ") == "Диалог"


@pytest.mark.parametrize(
    "status, error_class",
    [
        (404, NotFoundError),
        (400, ValidationError),
        (422, ValidationError),
        (500, ServerError),
        (502, ServerError),
    ],
)
def test_http_errors_mapped(status, error_class):
    """Test status codes map to exception types."""
    client = make_client(failing(status))
    with pytest.raises(error_class) as exc_info:
        client.list_models()
    assert exc_info.value.status_code == status
    assert f"HTTP {status} at /v1/models" in exc_info.value.message


def test_openai_error_body():
    """Test error type and message from an OpenAI-style body."""
    body = {"error": {"message": "bad key", "type": "invalid_api_key"}}
    client = make_client(failing(401, body))
    with pytest.raises(APIError) as exc_info:
        client.list_models()
    assert exc_info.value.error_type == "invalid_api_key"
    assert exc_info.value.message == "HTTP 401 at /v1/models: bad key"
    assert exc_info.value.details == body


def test_connection_error_is_server_unavailable():
    """Test transport failures."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(ServerUnavailableError):
        client.list_models()


# ===== CHAT SESSION =====

def test_session_starts_with_empty_conversation(config_manager):
    """Test first start creates and persists one conversation."""
    session = ChatSession(make_client(FakeServer()), config_manager)
    assert len(session.conversations) == 1
    assert session.current.title == DEFAULT_TITLE
    assert session.summaries() == []
    assert len(config_manager.load_conversations()) == 1


def test_send_with_model(config_manager):
    """Test a full exchange with generated title and persistence."""
    server = FakeServer(reply="Ответ модели")
    session = ChatSession(make_client(server), config_manager)
    assert session.initialize_model() is True

    reply = session.send("Привет")

    assert reply == ChatMessage(role="assistant", content="Ответ модели")
    assert [m.role for m in session.current.messages] == ["user", "assistant"]
    assert session.current.title == "Тема разговора"
    assert server.chat_payloads()[0]["messages"] == [{"role": "user", "content": "Привет"}]

    stored = ConfigManager(config_manager.config_dir).load_conversations()
    assert stored[0].title == "Тема разговора"
    assert len(stored[0].messages) == 2


def test_title_generated_once(config_manager):
    """Test later messages keep the title and send history."""
    server = FakeServer()
    session = ChatSession(make_client(server), config_manager)
    session.initialize_model()
    session.send("first")
    server.title = "Другое"
    session.send("second")

    assert session.current.title == "Тема разговора"
    last = server.chat_payloads()[-1]
    assert [m["content"] for m in last["messages"]] == ["first", "Ответ", "second"]


def test_send_streaming(config_manager):
    """Test token callback during streaming."""
    session = ChatSession(make_client(FakeServer(tokens=("a", "b"))), config_manager)
    session.initialize_model()
    tokens = []

    reply = session.send("hi", on_token=tokens.append)

    assert tokens == ["a", "b"]
    assert reply.content == "ab"


def test_send_blank_prompt(config_manager):
    """Test blank input is ignored."""
    session = ChatSession(make_client(FakeServer()), config_manager)
    assert session.send("   ") is None
    assert session.current.messages == []


def test_send_without_model(config_manager):
    """Test notice reply and prompt-based title without a model."""
    session = ChatSession(make_client(FakeServer()), config_manager)
    reply = session.send("Вопрос без модели")
    assert reply.content == SELECT_MODEL_NOTICE
    assert session.current.title == "Вопрос без модели"


def test_send_server_error(config_manager):
    """Test request errors become an assistant message."""
    server = FakeServer()
    session = ChatSession(make_client(server), config_manager)

    def broken(request):
        return httpx.Response(500, json={"error": {"message": "crash"}})

    session.client = make_client(broken, model="m1")
    session.model_ready = True
    reply = session.send("Сломай")

    assert reply.content.startswith("Ошибка запроса к модели:")
    assert "crash" in reply.content
    assert session.current.title == "Сломай"


def test_initialize_model_unavailable(config_manager):
    """Test status message when the server is down."""
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    session = ChatSession(make_client(handler), config_manager)
    assert session.initialize_model() is False
    assert session.status_message.startswith("Ошибка запроса списка моделей")


def test_initialize_model_no_models(config_manager):
    """Test status message for an empty model list."""
    session = ChatSession(make_client(FakeServer(models=())), config_manager)
    assert session.initialize_model() is False
    assert session.status_message == "Модели не найдены."


def test_conversation_management(config_manager):
    """Test new, open, rename and delete."""
    session = ChatSession(make_client(FakeServer()), config_manager)
    first = session.current
    second = session.new_conversation()
    assert session.current_id == second.id

    assert session.open(first.id[:8]) is not None
    assert session.current_id == first.id

    assert session.rename(second.id, "  Заметки ") is True
    assert session.get(second.id).title == "Заметки"
    assert session.rename(second.id, "   ") is False
    assert session.rename("missing", "x") is False

    assert session.delete(second.id) is True
    assert session.delete(first.id) is True
    assert len(session.conversations) == 1
    assert session.current.title == DEFAULT_TITLE
    assert session.current.id not in (first.id, second.id)
    assert session.delete("missing") is False


def test_session_loads_saved_history(config_manager):
    """Test conversations are restored from disk."""
    session = ChatSession(make_client(FakeServer()), config_manager)
    session.send("сохранить")
    conv_id = session.current_id

    restored = ChatSession(make_client(FakeServer()), ConfigManager(config_manager.config_dir))
    assert restored.current_id == conv_id
    assert restored.current.messages[0].content == "сохранить"
