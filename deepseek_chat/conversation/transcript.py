"""聊天输出文本面板。

对应界面上的聊天记录文本框：用户输入以 "You: " 开头，
助手回答以 "AI: " 开头并随 delta 逐步追加，失败时追加错误标记。

失败轮次中已经显示的部分文本不会被撤回（历史中并不存在这条
assistant 消息），错误标记直接追加在其后。
"""

from typing import Callable, List


class ChatTranscript:
    def __init__(self, user_label: str = "You", assistant_label: str = "AI"):
        self.user_label = user_label
        self.assistant_label = assistant_label
        self._parts: List[str] = []
        self.listeners: List[Callable[[str], None]] = []

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def user_turn(self, text: str) -> None:
        """显示用户消息，并写出助手回答的前缀。"""

        self._append(f"\n{self.user_label}: {text}")
        self._append(f"\n{self.assistant_label}: ")

    def append_delta(self, text: str) -> None:
        if text:
            self._append(text)

    def error(self, detail: str) -> None:
        self._append(f"\n[错误: {detail}]")

    def clear(self) -> None:
        self._parts.clear()
        self._notify()

    def _append(self, text: str) -> None:
        self._parts.append(text)
        self._notify()

    def _notify(self) -> None:
        # 监听者通常用于滚动到末尾
        text = self.text
        for listener in list(self.listeners):
            listener(text)
