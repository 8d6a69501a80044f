"""DeepSeek Chat 顶层包。

该包提供流式聊天客户端的核心实现，包括配置加载、领域模型、
流式分块解码、对话聚合、Provider 传输适配与输出渲染。
"""

from deepseek_chat.conversation import ChatSession, ChatTranscript, ConversationAggregator
from deepseek_chat.streaming import ChunkDecoder

__all__ = ["ChatSession", "ChatTranscript", "ChunkDecoder", "ConversationAggregator"]
