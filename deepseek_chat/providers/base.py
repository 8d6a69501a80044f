"""传输层抽象接口。

聊天核心不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 StreamTransport（如 DeepSeekClient）。
- 负责：将 ChatRequest 转成具体 API 请求，并原样产出响应体的字节分块。

分块如何切分行、如何解析帧由 ChunkDecoder 负责，传输层不关心。
"""

from typing import Protocol, Iterable
from deepseek_chat.domain.models import ChatRequest


class StreamTransport(Protocol):
    """流式传输客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - stream_raw(req): 发起流式请求，逐块产出原始响应字节；
      失败时抛出 domain.exceptions 中的 BusinessError 子类。
    """

    name: str

    def stream_raw(self, req: ChatRequest) -> Iterable[bytes]:
        ...
