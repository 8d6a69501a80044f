from deepseek_chat.conversation.transcript import ChatTranscript
from deepseek_chat.infrastructure.dispatch import InlineDispatcher, QueueDispatcher


def test_transcript_renders_turns_and_errors():
    t = ChatTranscript()
    t.user_turn("hi")
    t.append_delta("He")
    t.append_delta("")
    t.append_delta("llo")
    t.error("timeout")
    assert t.text == "\nYou: hi\nAI: Hello\n[错误: timeout]"


def test_transcript_listeners_receive_full_text():
    t = ChatTranscript(user_label="用户", assistant_label="助手")
    seen = []
    t.listeners.append(seen.append)
    t.user_turn("你好")
    assert seen == ["\n用户: 你好", "\n用户: 你好\n助手: "]
    t.clear()
    assert seen[-1] == ""


def test_queue_dispatcher_runs_in_fifo_order():
    d = QueueDispatcher()
    out = []
    for i in range(3):
        d.submit(lambda i=i: out.append(i))
    assert out == []
    assert len(d) == 3
    assert d.drain() == 3
    assert out == [0, 1, 2]
    assert d.drain() == 0


def test_queue_dispatcher_defers_actions_submitted_while_draining():
    d = QueueDispatcher()
    out = []
    d.submit(lambda: d.submit(lambda: out.append("later")))
    assert d.drain() == 1
    assert out == []
    d.drain()
    assert out == ["later"]


def test_inline_dispatcher_runs_immediately():
    out = []
    InlineDispatcher().submit(lambda: out.append(1))
    assert out == [1]
