import threading

import pytest

from deepseek_chat.conversation.aggregator import ConversationAggregator
from deepseek_chat.domain.exceptions import InvalidStateError, ValidationError
from deepseek_chat.domain.models import ChatMessage, StreamFrame
from deepseek_chat.streaming.decoder import ChunkDecoder


SYSTEM = "You are a helpful assistant. Answer concisely."


def _agg() -> ConversationAggregator:
    return ConversationAggregator(SYSTEM)


def test_history_starts_with_single_system_message():
    agg = _agg()
    assert agg.history == (ChatMessage(role="system", content=SYSTEM),)
    assert agg.state == "idle"
    assert agg.pending_text is None


def test_submit_appends_user_message_and_opens_turn():
    agg = _agg()
    handle = agg.submit_user_message("  hi there  ")
    assert handle.user_text == "hi there"
    assert handle.messages[-1] == ChatMessage(role="user", content="hi there")
    assert handle.messages == agg.history
    assert agg.state == "streaming"
    assert agg.pending_text == ""
    assert agg.current_turn_id == handle.turn_id


def test_second_submit_while_streaming_is_rejected():
    agg = _agg()
    agg.submit_user_message("first")
    before = agg.history
    with pytest.raises(InvalidStateError) as exc:
        agg.submit_user_message("second")
    assert exc.value.code == "TURN_IN_PROGRESS"
    assert agg.history == before
    assert agg.history[-1].content == "first"


def test_blank_message_is_rejected_without_state_change():
    agg = _agg()
    with pytest.raises(ValidationError):
        agg.submit_user_message("   ")
    assert len(agg.history) == 1
    assert agg.state == "idle"


def test_deltas_are_returned_and_committed_in_order():
    agg = _agg()
    agg.submit_user_message("hi")
    returned = [agg.on_frame(StreamFrame.delta(t)) for t in ["He", "ll", "o!"]]
    assert returned == ["He", "ll", "o!"]
    assert agg.pending_text == "Hello!"
    # 流式过程中历史里没有半成品的 assistant 消息
    assert [m.role for m in agg.history] == ["system", "user"]

    result = agg.on_stream_end(True)
    assert result.success
    assert result.message == ChatMessage(role="assistant", content="Hello!")
    assert agg.history[-1] == result.message
    assert agg.state == "idle"


def test_done_frame_does_not_commit():
    agg = _agg()
    agg.submit_user_message("hi")
    agg.on_frame(StreamFrame.delta("x"))
    assert agg.on_frame(StreamFrame.done()) is None
    assert agg.state == "streaming"
    assert len(agg.history) == 2
    result = agg.on_stream_end(True)
    assert result.meta["done_seen"] is True
    assert len(agg.history) == 3


def test_unparsable_frame_is_ignored():
    agg = _agg()
    agg.submit_user_message("hi")
    agg.on_frame(StreamFrame.delta("a"))
    assert agg.on_frame(StreamFrame.unparsable("{bad}")) is None
    agg.on_frame(StreamFrame.delta("b"))
    assert agg.pending_text == "ab"
    assert agg.state == "streaming"
    result = agg.on_stream_end(True)
    assert result.meta["unparsable_count"] == 1


def test_failed_stream_discards_pending_turn():
    agg = _agg()
    agg.submit_user_message("hi")
    length = len(agg.history)
    agg.on_frame(StreamFrame.delta("partial"))
    result = agg.on_stream_end(False, "HTTP 500: boom")
    assert not result.success
    assert result.message is None
    assert result.error == "HTTP 500: boom"
    assert len(agg.history) == length
    assert all(m.role != "assistant" for m in agg.history)
    assert agg.last_error == "HTTP 500: boom"
    assert agg.state == "idle"


def test_next_turn_allowed_after_failure():
    agg = _agg()
    agg.submit_user_message("one")
    agg.on_stream_end(False, "timeout")
    handle = agg.submit_user_message("two")
    assert [m.content for m in handle.messages[1:]] == ["one", "two"]


def test_stream_end_is_idempotent():
    agg = _agg()
    agg.submit_user_message("hi")
    agg.on_frame(StreamFrame.delta("ok"))
    assert agg.on_stream_end(True) is not None
    snapshot = agg.history
    assert agg.on_stream_end(True) is None
    assert agg.on_stream_end(False, "late failure") is None
    assert agg.history == snapshot
    assert agg.last_error is None


def test_stale_frames_are_noops():
    agg = _agg()
    assert agg.on_frame(StreamFrame.delta("ghost")) is None
    assert agg.on_frame(StreamFrame.done()) is None
    assert agg.state == "idle"
    assert len(agg.history) == 1


def test_stream_end_for_other_turn_is_ignored():
    agg = _agg()
    old = agg.submit_user_message("one")
    agg.on_stream_end(True, turn_id=old.turn_id)
    agg.submit_user_message("two")
    assert agg.on_stream_end(False, "late", turn_id=old.turn_id) is None
    assert agg.state == "streaming"


def test_empty_successful_turn_commits_empty_message():
    agg = _agg()
    agg.submit_user_message("hi")
    result = agg.on_stream_end(True)
    assert result.message.content == ""


def test_decoded_frames_feed_the_aggregator():
    agg = _agg()
    agg.submit_user_message("hi")
    dec = ChunkDecoder()
    chunks = [
        'data: {"choices":[{"delta":{"content":"Hel',
        'lo"}}]}\n\n',
        "data: [DONE]\n",
    ]
    for chunk in chunks:
        for frame in dec.feed(chunk):
            agg.on_frame(frame)
    agg.on_stream_end(True)
    assert agg.history[-1] == ChatMessage(role="assistant", content="Hello")
    assert len(agg.history) == 3


def test_frames_from_worker_threads_are_serialized():
    agg = _agg()
    agg.submit_user_message("hi")

    def push():
        for _ in range(200):
            agg.on_frame(StreamFrame.delta("x"))

    threads = [threading.Thread(target=push) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    result = agg.on_stream_end(True)
    assert len(result.message.content) == 800


def test_frame_for_other_turn_is_ignored():
    agg = _agg()
    old = agg.submit_user_message("one")
    agg.on_stream_end(False, "cancelled", turn_id=old.turn_id)
    new = agg.submit_user_message("two")
    assert agg.on_frame(StreamFrame.delta("OLD"), turn_id=old.turn_id) is None
    assert agg.on_frame(StreamFrame.delta("new"), turn_id=new.turn_id) == "new"
    result = agg.on_stream_end(True, turn_id=new.turn_id)
    assert result.message.content == "new"
