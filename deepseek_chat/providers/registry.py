"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "chat"。
- provider_model：厂商实际提供的模型 ID，例如 "deepseek-chat"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置，便于后续升级或切换。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]

    def resolve_model(self, name: str) -> ModelConfig:
        """按逻辑名查找模型；传入的已经是厂商模型 ID 时也能命中。"""

        if name in self.models:
            return self.models[name]
        for cfg in self.models.values():
            if cfg.provider_model == name:
                return cfg
        raise KeyError(f"Unknown model for {self.name}: {name!r}")


DEEPSEEK_CONFIG = ProviderConfig(
    name="deepseek",
    base_url="https://api.deepseek.com/v1",
    models={
        "chat": ModelConfig(
            logical_name="chat",
            provider_model="deepseek-chat",
            max_tokens=8192,
            default_temperature=1.0,
        ),
        "reasoner": ModelConfig(
            logical_name="reasoner",
            provider_model="deepseek-reasoner",
            max_tokens=8192,
            default_temperature=1.0,
        ),
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "deepseek": DEEPSEEK_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
