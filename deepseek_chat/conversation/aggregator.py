"""对话聚合器。

负责一轮请求/响应周期的状态机，并维护对话历史：

    idle --submit_user_message--> streaming --on_stream_end--> idle

- 历史以唯一一条 system 消息开头，之后只在尾部追加。
- 流式过程中的 assistant 文本只存在于 PendingTurn 中，
  只有 on_stream_end(success=True) 才会把它原子地提交到历史。
- done 帧只是协议提示，不触发提交；传输层的成功/失败才是最终依据。
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple
from uuid import uuid4

from deepseek_chat.domain.exceptions import InvalidStateError, ValidationError
from deepseek_chat.domain.models import ChatMessage, StreamFrame, TurnHandle, TurnResult
from deepseek_chat.infrastructure.logging.logger import logger


AggregatorState = Literal["idle", "streaming"]


@dataclass
class PendingTurn:
    """进行中、尚未提交的 assistant 回答。"""

    turn_id: str
    accumulated_text: str = ""
    done_seen: bool = False
    delta_count: int = 0
    unparsable_count: int = 0


class ConversationAggregator:
    """单写者的对话状态持有者。

    所有状态修改都在同一把锁内完成，宿主即使在工作线程里投递通知，
    也不会出现交错写入。同一时刻最多只有一个 PendingTurn。
    """

    def __init__(self, system_prompt: str):
        self._lock = threading.RLock()
        self._history: List[ChatMessage] = [ChatMessage(role="system", content=system_prompt)]
        self._pending: Optional[PendingTurn] = None
        self._last_error: Optional[str] = None

    @property
    def state(self) -> AggregatorState:
        with self._lock:
            return "streaming" if self._pending is not None else "idle"

    @property
    def is_streaming(self) -> bool:
        return self.state == "streaming"

    @property
    def history(self) -> Tuple[ChatMessage, ...]:
        """已提交历史的快照；进行中的回答不会出现在这里。"""

        with self._lock:
            return tuple(self._history)

    @property
    def pending_text(self) -> Optional[str]:
        with self._lock:
            return self._pending.accumulated_text if self._pending else None

    @property
    def current_turn_id(self) -> Optional[str]:
        with self._lock:
            return self._pending.turn_id if self._pending else None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def submit_user_message(self, text: str) -> TurnHandle:
        """追加一条 user 消息并打开新的 PendingTurn。

        Raises:
            ValidationError: 输入为空或只有空白。
            InvalidStateError: 已有进行中的请求（不会排队）。
        """

        user_text = (text or "").strip()
        if not user_text:
            raise ValidationError(code="EMPTY_MESSAGE", message="User message is empty")
        with self._lock:
            if self._pending is not None:
                raise InvalidStateError(
                    code="TURN_IN_PROGRESS",
                    message="A response is still streaming",
                    http_status=409,
                    turn_id=self._pending.turn_id,
                )
            self._history.append(ChatMessage(role="user", content=user_text))
            self._pending = PendingTurn(turn_id=f"t-{uuid4().hex}")
            handle = TurnHandle(
                turn_id=self._pending.turn_id,
                user_text=user_text,
                messages=tuple(self._history),
            )
        self._log(logging.INFO, "User turn submitted", turn_id=handle.turn_id, history_len=len(handle.messages))
        return handle

    def on_frame(self, frame: StreamFrame, turn_id: Optional[str] = None) -> Optional[str]:
        """应用一个解码后的帧，delta 帧返回新增文本供界面增量渲染。

        没有进行中的轮次，或 turn_id 与当前轮次不匹配时为空操作。
        """

        with self._lock:
            pending = self._pending
            if pending is None or (turn_id is not None and turn_id != pending.turn_id):
                # 迟到或重复的通知，静默忽略
                self._log(logging.DEBUG, "Stale frame ignored", kind=frame.kind, turn_id=turn_id)
                return None
            if frame.kind == "delta":
                text = frame.text or ""
                pending.accumulated_text += text
                pending.delta_count += 1
                return text
            if frame.kind == "done":
                pending.done_seen = True
                return None
            pending.unparsable_count += 1
        level = logging.WARNING if frame.reason == "invalid_json" else logging.DEBUG
        self._log(
            level,
            "Skipped unparsable stream frame",
            turn_id=pending.turn_id,
            reason=frame.reason,
            raw=(frame.raw or "")[:200],
        )
        return None

    def on_stream_end(
        self,
        success: bool,
        transport_error_detail: Optional[str] = None,
        turn_id: Optional[str] = None,
    ) -> Optional[TurnResult]:
        """传输层结束通知，每轮的最后一个通知。

        成功时把累积文本作为 assistant 消息提交；失败时丢弃 PendingTurn
        并记录错误详情。没有进行中的轮次（重复调用）或 turn_id 不匹配时
        为空操作，返回 None。
        """

        with self._lock:
            pending = self._pending
            if pending is None or (turn_id is not None and turn_id != pending.turn_id):
                self._log(logging.DEBUG, "Stale stream end ignored", success=success, turn_id=turn_id)
                return None
            self._pending = None
            meta = {
                "done_seen": pending.done_seen,
                "delta_count": pending.delta_count,
                "unparsable_count": pending.unparsable_count,
            }
            if success:
                message = ChatMessage(role="assistant", content=pending.accumulated_text)
                self._history.append(message)
                result = TurnResult(turn_id=pending.turn_id, success=True, message=message, meta=meta)
            else:
                self._last_error = transport_error_detail or "unknown transport error"
                result = TurnResult(
                    turn_id=pending.turn_id,
                    success=False,
                    error=self._last_error,
                    meta=meta,
                )
        if result.success:
            self._log(
                logging.INFO,
                "Assistant turn committed",
                turn_id=result.turn_id,
                content_len=len(result.message.content),
                **meta,
            )
        else:
            self._log(
                logging.ERROR,
                "Assistant turn discarded",
                turn_id=result.turn_id,
                error=result.error,
                **meta,
            )
        return result

    @staticmethod
    def _log(level: int, message: str, **fields) -> None:
        logger.log(level, message, extra={"extra": fields})
