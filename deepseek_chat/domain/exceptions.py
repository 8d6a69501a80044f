"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层或 UI 层做统一捕获与用户提示。

注意：单个 data 帧解析失败不是异常，而是以 unparsable 帧的形式返回，
调用方无需 try/except 就能继续消费后续帧。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "TURN_IN_PROGRESS"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 turn_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class InvalidStateError(BusinessError):
    """当前已有进行中的流式请求时再次提交用户消息。"""


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx/429 错误时抛出，message 为服务端返回的详情。"""


class RateLimitError(BusinessError):
    """Provider 限流错误，本项目不做重试，交由上层决定。"""


class ValidationError(BusinessError):
    """参数或配置校验失败（空消息、缺少 API key 等）。"""
