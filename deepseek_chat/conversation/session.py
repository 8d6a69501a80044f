"""聊天会话编排。

把传输层、解码器、聚合器和输出面板串成一次完整的发送流程：

1. submit_user_message 追加 user 消息并显示 "You: ..." / "AI: "。
2. 工作线程通过 StreamTransport 拉取原始分块，交给本轮的 ChunkDecoder。
3. 解码出的帧经由 Dispatcher 投递到拥有者上下文，依次应用到聚合器，
   delta 文本追加到输出面板。
4. 传输结束（成功/失败/取消）后调用 on_stream_end，失败时显示错误标记。
"""

import threading
from functools import partial
from typing import Callable, List, Optional, Tuple

from deepseek_chat.config.settings import settings
from deepseek_chat.conversation.aggregator import ConversationAggregator
from deepseek_chat.conversation.transcript import ChatTranscript
from deepseek_chat.domain.exceptions import BusinessError
from deepseek_chat.domain.models import ChatMessage, ChatRequest, StreamFrame, TurnHandle, TurnResult
from deepseek_chat.infrastructure.dispatch import Dispatcher, InlineDispatcher
from deepseek_chat.infrastructure.logging.logger import logger
from deepseek_chat.prompts import load_system_prompt
from deepseek_chat.providers.base import StreamTransport
from deepseek_chat.streaming.decoder import ChunkDecoder


CANCELLED_DETAIL = "cancelled"

Submit = Callable[[Callable[[], None]], None]


class ChatSession:
    def __init__(
        self,
        transport: StreamTransport,
        aggregator: Optional[ConversationAggregator] = None,
        transcript: Optional[ChatTranscript] = None,
        dispatcher: Optional[Dispatcher] = None,
        model: Optional[str] = None,
        on_delta: Optional[Callable[[str], None]] = None,
        on_turn_end: Optional[Callable[[TurnResult], None]] = None,
    ):
        self._transport = transport
        self.aggregator = aggregator or ConversationAggregator(
            settings.system_prompt or load_system_prompt(settings.prompt_locale)
        )
        self.transcript = transcript or ChatTranscript()
        self._dispatcher = dispatcher or InlineDispatcher()
        self.model = model or settings.default_model
        self.on_delta = on_delta
        self.on_turn_end = on_turn_end
        self.last_result: Optional[TurnResult] = None
        self._active: Optional[TurnHandle] = None
        self._cancel_event = threading.Event()
        self._worker: Optional[threading.Thread] = None

    @property
    def history(self) -> List[ChatMessage]:
        return list(self.aggregator.history)

    @property
    def is_streaming(self) -> bool:
        return self.aggregator.is_streaming

    def send(self, text: str) -> TurnHandle:
        """发送用户消息并在后台线程中接收流式回答，立即返回本轮句柄。

        Raises:
            ValidationError / InvalidStateError: 同 submit_user_message，状态不变。
        """

        handle, cancel_event = self._begin(text)
        self._worker = threading.Thread(
            target=self._stream,
            args=(handle, cancel_event, self._dispatcher.submit),
            name=f"chat-stream-{handle.turn_id}",
            daemon=True,
        )
        self._worker.start()
        return handle

    def run_turn(self, text: str) -> Optional[TurnResult]:
        """在当前线程同步完成一轮对话（命令行/测试使用）。"""

        handle, cancel_event = self._begin(text)
        self._stream(handle, cancel_event, _run_now)
        return self.last_result

    def wait(self, timeout: Optional[float] = None) -> bool:
        """等待后台线程结束，返回线程是否已经结束。"""

        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def cancel(self) -> bool:
        """取消进行中的请求，应在拥有者上下文中调用。

        在调用线程上立即以失败结束本轮（不经过 Dispatcher）；工作线程在
        下一个分块到达时停止读取，之后迟到的帧和结束通知都会因 turn_id
        不匹配而被忽略。
        """

        handle = self._active
        if handle is None or not self.aggregator.is_streaming:
            return False
        self._cancel_event.set()
        self._finish(handle, False, CANCELLED_DETAIL)
        return True

    def _begin(self, text: str) -> Tuple[TurnHandle, threading.Event]:
        handle = self.aggregator.submit_user_message(text)
        cancel_event = threading.Event()
        self._active = handle
        self._cancel_event = cancel_event
        self.transcript.user_turn(handle.user_text)
        return handle, cancel_event

    def _stream(self, handle: TurnHandle, cancel_event: threading.Event, submit: Submit) -> None:
        decoder = ChunkDecoder()
        req = ChatRequest(model=self.model, messages=handle.messages)
        log_ctx = {"turn_id": handle.turn_id, "provider": self._transport.name, "model": self.model}
        logger.info("Calling provider (stream)", extra={"extra": {**log_ctx, "message_count": len(req.messages)}})
        chunks = None
        try:
            chunks = self._transport.stream_raw(req)
            for chunk in chunks:
                if cancel_event.is_set():
                    submit(partial(self._finish, handle, False, CANCELLED_DETAIL))
                    return
                frames = decoder.feed(chunk)
                if frames:
                    submit(partial(self._apply_frames, handle.turn_id, frames))
            frames = decoder.flush()
            if frames:
                submit(partial(self._apply_frames, handle.turn_id, frames))
        except BusinessError as e:
            logger.error("Stream failed", extra={"extra": {**log_ctx, "code": e.code, "error": e.message}})
            submit(partial(self._finish, handle, False, e.message))
            return
        except Exception as e:
            # 工作线程的边界：未知异常也必须结束本轮，不能留下悬空的 PendingTurn
            logger.exception("Unexpected stream failure", extra={"extra": log_ctx})
            submit(partial(self._finish, handle, False, str(e) or type(e).__name__))
            return
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()
        submit(partial(self._finish, handle, True, None))

    def _apply_frames(self, turn_id: str, frames: List[StreamFrame]) -> None:
        for frame in frames:
            delta = self.aggregator.on_frame(frame, turn_id=turn_id)
            if delta:
                self.transcript.append_delta(delta)
                if self.on_delta:
                    self.on_delta(delta)

    def _finish(self, handle: TurnHandle, success: bool, detail: Optional[str]) -> None:
        result = self.aggregator.on_stream_end(success, detail, turn_id=handle.turn_id)
        if result is None:
            return
        if self._active is handle:
            self._active = None
        if not result.success:
            self.transcript.error(result.error or "")
        self.last_result = result
        if self.on_turn_end:
            self.on_turn_end(result)


def _run_now(fn: Callable[[], None]) -> None:
    fn()
