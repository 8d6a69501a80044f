"""对话层。

- aggregator: ConversationAggregator，单轮状态机与历史维护。
- transcript: ChatTranscript，聊天输出文本面板。
- session: ChatSession，把传输、解码、聚合和渲染串起来。
"""

from deepseek_chat.conversation.aggregator import ConversationAggregator
from deepseek_chat.conversation.session import ChatSession
from deepseek_chat.conversation.transcript import ChatTranscript

__all__ = ["ChatSession", "ChatTranscript", "ConversationAggregator"]
