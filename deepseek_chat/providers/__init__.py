"""LLM Provider 集成层。

该包下的模块负责：
- 定义传输层抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供具体实现 (deepseek_client)。
"""

from typing import Optional

from deepseek_chat.config.settings import settings
from deepseek_chat.providers.base import StreamTransport
from deepseek_chat.providers.deepseek_client import DeepSeekClient
from deepseek_chat.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None) -> StreamTransport:
    """根据名称创建 Provider 实例，默认取配置中的 provider。"""

    provider_name = (name or getattr(settings, "default_provider", "deepseek")).lower()
    # 未知名称直接抛 KeyError，避免静默回退到错误的厂商
    get_provider_config(provider_name)
    return DeepSeekClient(settings)
