from deepseek_chat.api import service
from deepseek_chat.conversation.aggregator import ConversationAggregator
from deepseek_chat.conversation.session import ChatSession


class FakeTransport:
    name = "fake"

    def stream_raw(self, req):
        yield b'data: {"choices":[{"delta":{"content":"pong"}}]}\n\ndata: [DONE]\n'


def test_run_chat_and_history(monkeypatch):
    session = ChatSession(transport=FakeTransport(), aggregator=ConversationAggregator("sys"), model="chat")
    monkeypatch.setattr(service, "_session", session)
    res = service.run_chat(" ping ")
    assert res["success"] is True
    assert res["user_message"] == "ping"
    assert res["assistant_message"] == "pong"
    assert res["error"] is None
    assert service.get_history() == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "ping"},
        {"role": "assistant", "content": "pong"},
    ]


def test_default_session_is_created_lazily(monkeypatch):
    monkeypatch.setattr(service, "_session", None)
    monkeypatch.setattr(service, "create_provider", lambda: FakeTransport())
    first = service.get_default_session()
    assert service.get_default_session() is first
    assert first.history[0].role == "system"
    service.reset_default_session()
    assert service._session is None
