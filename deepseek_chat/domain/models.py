"""统一的对话与流式帧数据模型。

本模块定义了聊天核心在各组件之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant），追加到历史后不可变。
- StreamFrame: 从流式响应中解码出的单个协议单元（delta/done/unparsable）。
- ChatRequest: 发给底层 Provider 的完整请求。
- TurnHandle / TurnResult: 一轮对话的句柄与最终结果。

传输层（DeepSeekClient）、解码器（ChunkDecoder）与聚合器
（ConversationAggregator）都只依赖这些模型。
"""

from dataclasses import dataclass
from typing import Literal, Optional, Any, Dict, Tuple


# LLM 消息角色类型（与 OpenAI / DeepSeek 的 role 字段对应）
Role = Literal["system", "user", "assistant"]

# 解码器产出的帧类型
FrameKind = Literal["delta", "done", "unparsable"]


@dataclass(frozen=True)
class ChatMessage:
    """一条对话消息。

    - role: 消息角色，如 system/user/assistant。
    - content: 纯文本内容。

    历史记录按顺序原样作为请求上下文重放，因此消息一经追加就不再修改。
    """

    role: Role
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class StreamFrame:
    """流式协议中解析出的一个帧。

    kind:
        - "delta": 正常的内容增量，text 为本次新增文本。
        - "done": 收到 `[DONE]` 结束标记。
        - "unparsable": data 行内容无法解析，raw 保存原始 payload，
          reason 为 "invalid_json" 或 "missing_content"（仅用于日志）。
    """

    kind: FrameKind
    text: Optional[str] = None
    raw: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def delta(cls, text: str) -> "StreamFrame":
        return cls(kind="delta", text=text)

    @classmethod
    def done(cls) -> "StreamFrame":
        return cls(kind="done")

    @classmethod
    def unparsable(cls, raw: str, reason: str = "invalid_json") -> "StreamFrame":
        return cls(kind="unparsable", raw=raw, reason=reason)


@dataclass
class ChatRequest:
    """一次完整的流式聊天请求。

    messages 为完整对话历史（含本轮 user 消息），
    Provider 适配层负责把本结构转换成 API 的 JSON 请求体。
    """

    model: str  # 逻辑模型名，如 "chat"（再由 registry 映射为真实模型名）
    messages: Tuple[ChatMessage, ...]
    stream: bool = True
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class TurnHandle:
    """submit_user_message 返回的本轮句柄。

    - turn_id: 本轮唯一标识，用于忽略迟到的旧信号。
    - user_text: 去掉首尾空白后的用户输入。
    - messages: 包含本轮 user 消息的历史快照，直接作为请求的 messages。
    """

    turn_id: str
    user_text: str
    messages: Tuple[ChatMessage, ...]


@dataclass(frozen=True)
class TurnResult:
    """一轮对话的最终结果。

    成功时 message 为刚提交到历史的 assistant 消息；
    失败时 message 为 None，error 为传输层的错误详情。
    """

    turn_id: str
    success: bool
    message: Optional[ChatMessage] = None
    error: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
