"""领域层模型与异常。

包含：
- models: ChatMessage / StreamFrame / ChatRequest / TurnHandle / TurnResult。
- exceptions: 业务异常类型定义。
"""
