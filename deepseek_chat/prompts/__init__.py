"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取 system prompt 文本，
用于构造对话历史开头唯一的 ChatMessage(role="system")。
"""

from pathlib import Path
from typing import Optional


PROMPTS_DIR = Path(__file__).resolve().parent
DEFAULT_LOCALE = "en"


def load_system_prompt(locale: Optional[str] = None) -> str:
    """根据语言加载系统提示词文本，未知语言回退到英文。"""

    fname = PROMPTS_DIR / (locale or DEFAULT_LOCALE) / "chat_system.md"
    if not fname.exists():
        fname = PROMPTS_DIR / DEFAULT_LOCALE / "chat_system.md"
    return fname.read_text(encoding="utf-8").strip()
