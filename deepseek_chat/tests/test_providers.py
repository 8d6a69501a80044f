import pytest

from deepseek_chat.providers import create_provider
from deepseek_chat.providers.deepseek_client import DeepSeekClient
from deepseek_chat.providers.registry import DEEPSEEK_CONFIG, get_provider_config


def test_create_provider_default(monkeypatch):
    class DummySettings:
        default_provider = "deepseek"
        deepseek_api_key = "sk-test-key-123"
        http_timeout = 1.0
        deepseek_base_url = "https://api.deepseek.com/v1"

    monkeypatch.setattr("deepseek_chat.providers.settings", DummySettings())
    provider = create_provider()
    assert isinstance(provider, DeepSeekClient)
    assert provider.name == "deepseek"


def test_create_provider_unknown_name():
    with pytest.raises(KeyError):
        create_provider("kimi")


def test_registry_lookup():
    assert get_provider_config("DeepSeek") is DEEPSEEK_CONFIG
    assert DEEPSEEK_CONFIG.resolve_model("chat").provider_model == "deepseek-chat"
    assert DEEPSEEK_CONFIG.resolve_model("deepseek-chat").logical_name == "chat"
    with pytest.raises(KeyError):
        DEEPSEEK_CONFIG.resolve_model("nope")
