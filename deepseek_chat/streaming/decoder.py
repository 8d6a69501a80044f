"""流式响应解码器。

DeepSeek/OpenAI 风格的流式响应是按行组织的伪 SSE 文本::

    data: {"choices":[{"delta":{"content":"<text>"}}]}

    data: [DONE]

网络分块的边界与行边界无关：一行可能被拆到两个分块里，一个分块也可能
包含多行。ChunkDecoder 负责把任意切分的原始分块还原成有序的 StreamFrame
序列，只处理完整的行，末尾不完整的行留到下一次 feed。
"""

import codecs
import json
from typing import Any, List, Optional, Union

from deepseek_chat.domain.models import StreamFrame


DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def parse_data_payload(payload: str) -> StreamFrame:
    """把 `data:` 之后的 payload 分类为 done / delta / unparsable。

    不抛异常：JSON 解析失败或缺少 choices[0].delta.content 时返回
    unparsable 帧，调用方可以直接继续处理后续帧。
    """

    if payload == DONE_SENTINEL:
        return StreamFrame.done()
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError):
        # JSONDecodeError 属于 ValueError；嵌套过深时 json 会抛 RecursionError
        return StreamFrame.unparsable(payload, reason="invalid_json")
    content = _extract_delta_content(data)
    if content:
        return StreamFrame.delta(content)
    return StreamFrame.unparsable(payload, reason="missing_content")


def _extract_delta_content(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str):
        return content
    return None


class ChunkDecoder:
    """把原始分块解码为 StreamFrame。

    唯一的可变状态是跨分块的残留行缓冲（以及 bytes 输入的增量 UTF-8
    解码器状态）。同一实例不支持并发调用 feed，调用方需要保证串行。
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._finished = False

    @property
    def finished(self) -> bool:
        """是否已经解码出 done 帧。"""

        return self._finished

    @property
    def pending(self) -> str:
        """尚未遇到换行符的残留内容。"""

        return self._buffer

    def feed(self, chunk: Union[str, bytes]) -> List[StreamFrame]:
        """追加一个原始分块，返回其中所有完整行产生的帧（按顺序）。

        同一条流通常只使用一种输入类型；若在 bytes 之后传入 str，
        先结算残留的半个 UTF-8 序列，保证文本顺序不变。
        """

        if isinstance(chunk, (bytes, bytearray)):
            text = self._utf8.decode(bytes(chunk))
        else:
            text = self._utf8.decode(b"", final=True) + chunk
            self._utf8.reset()
        if not text:
            return []
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        frames: List[StreamFrame] = []
        for line in lines:
            frame = self._decode_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def flush(self) -> List[StreamFrame]:
        """连接关闭时调用：把残留的最后一行当作完整行处理，并清空状态。"""

        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        self._utf8.reset()
        frame = self._decode_line(tail)
        return [frame] if frame is not None else []

    def reset(self) -> None:
        """清空缓冲，便于复用同一实例解码新的流。"""

        self._buffer = ""
        self._utf8.reset()
        self._finished = False

    def _decode_line(self, line: str) -> Optional[StreamFrame]:
        trimmed = line.lstrip()
        # 空行、注释行等非 data 行属于协议噪声，直接忽略
        if not trimmed.startswith(DATA_PREFIX):
            return None
        payload = trimmed[len(DATA_PREFIX):].strip()
        frame = parse_data_payload(payload)
        if frame.kind == "done":
            self._finished = True
        return frame
