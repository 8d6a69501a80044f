"""DeepSeek Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 DeepSeek chat/completions 的流式 HTTP 请求。
3. 调用 HTTP 接口并处理网络/API 异常。
4. 把响应体按到达顺序原样产出为字节分块，交给 ChunkDecoder 解析。

这里刻意不做按行切分：网络分块边界与协议行边界无关，
跨分块的残留行由解码器统一处理。
"""

import httpx
from typing import Any, Dict, Iterable

from deepseek_chat.domain.models import ChatRequest
from deepseek_chat.domain.exceptions import NetworkError, ApiError, RateLimitError, ValidationError
from deepseek_chat.providers.registry import DEEPSEEK_CONFIG, ModelConfig


class DeepSeekClient:
    """DeepSeek 流式传输客户端。

    - name: Provider 名称（供日志/调试使用）。
    - stream_raw: 对外统一调用入口，逐块产出响应字节。
    """

    name = "deepseek"

    def __init__(self, settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = settings

    def stream_raw(self, req: ChatRequest) -> Iterable[bytes]:
        """执行一次流式对话调用，逐步 yield 原始字节分块。

        步骤：
        1. 读取模型配置（logical model -> provider model）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 按到达顺序产出响应体分块。
        """

        if not getattr(self._settings, "deepseek_api_key", None):
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(code="MISSING_API_KEY", message="DEEPSEEK_API_KEY not set")
        payload = self.build_payload(req)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                with client.stream(
                    "POST",
                    self._endpoint(),
                    json=payload,
                    headers=self._headers(),
                ) as resp:
                    if resp.status_code == 429:
                        raise RateLimitError(code="RATE_LIMIT", message="DeepSeek rate limit", http_status=429)
                    if resp.status_code >= 400:
                        # 流式响应需要先读完才能拿到服务端返回的错误详情
                        resp.read()
                        raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
                    for chunk in resp.iter_bytes():
                        if chunk:
                            yield chunk
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时、读取中途断开等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)

    def build_payload(self, req: ChatRequest) -> Dict[str, Any]:
        """将 ChatRequest 转成 DeepSeek 所需的请求 JSON。"""

        model_cfg = self._model_config(req.model)
        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [m.to_payload() for m in req.messages],
            "stream": req.stream,
        }
        if req.temperature is not None:
            payload["temperature"] = req.temperature
        if req.max_tokens is not None:
            payload["max_tokens"] = min(req.max_tokens, model_cfg.max_tokens)
        return payload

    def _model_config(self, name: str) -> ModelConfig:
        try:
            return DEEPSEEK_CONFIG.resolve_model(name)
        except KeyError:
            raise ValidationError(code="UNKNOWN_MODEL", message=f"Unknown model: {name}")

    def _endpoint(self) -> str:
        base = getattr(self._settings, "deepseek_base_url", None) or DEEPSEEK_CONFIG.base_url
        return f"{base.rstrip('/')}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.deepseek_api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
