"""跨线程通知的显式派发通道。

传输层在工作线程里收到数据，而对话状态只能由一个上下文修改。
ChatSession 在构造时接收一个 Dispatcher，所有解码/聚合通知都经由它
投递；不存在进程级的全局实例。

- InlineDispatcher: 立即在当前线程执行，适用于单线程宿主和测试。
- QueueDispatcher: 线程安全的 FIFO 队列，由拥有者线程定期调用 drain()
  按提交顺序执行（例如 GUI 的定时回调）。
"""

import threading
from collections import deque
from typing import Callable, Deque, Protocol


class Dispatcher(Protocol):
    def submit(self, fn: Callable[[], None]) -> None:
        ...


class InlineDispatcher:
    def submit(self, fn: Callable[[], None]) -> None:
        fn()


class QueueDispatcher:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._actions: Deque[Callable[[], None]] = deque()

    def submit(self, fn: Callable[[], None]) -> None:
        with self._lock:
            self._actions.append(fn)

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)

    def drain(self) -> int:
        """执行当前已排队的全部动作，返回执行数量。

        动作在锁外执行，因此动作内部再次 submit 不会死锁，
        新提交的动作留到下一次 drain。
        """

        with self._lock:
            actions = list(self._actions)
            self._actions.clear()
        for action in actions:
            action()
        return len(actions)
