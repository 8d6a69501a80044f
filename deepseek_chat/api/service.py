"""对外 API 服务模块。

提供简化的函数接口供上层应用调用。
"""

from typing import Optional, Dict, Any

from deepseek_chat.conversation.session import ChatSession
from deepseek_chat.providers import create_provider
from deepseek_chat.infrastructure.logging.logger import logger


_session: Optional[ChatSession] = None


def get_default_session() -> ChatSession:
    """获取默认的聊天会话实例（延迟创建）。"""
    global _session
    if _session is None:
        _session = ChatSession(transport=create_provider())
    return _session


def reset_default_session() -> None:
    """丢弃默认会话，下次调用时重新创建（历史随之清空）。"""
    global _session
    _session = None


def run_chat(user_input: str) -> Dict[str, Any]:
    """同步运行一轮流式对话。

    Args:
        user_input: 用户输入内容

    Returns:
        包含本轮 ID、用户消息、助手消息（失败时为 None）、
        是否成功及错误详情的字典

    Raises:
        ValidationError: 输入为空
        InvalidStateError: 已有进行中的请求
    """
    session = get_default_session()
    try:
        result = session.run_turn(user_input)
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {"error": str(e)}})
        raise

    return {
        "turn_id": result.turn_id,
        "user_message": user_input.strip(),
        "assistant_message": result.message.content if result.message else None,
        "success": result.success,
        "error": result.error,
    }


def get_history() -> list[Dict[str, Any]]:
    """获取默认会话中已提交的全部消息。

    Returns:
        消息列表，每项包含 role 与 content
    """
    session = get_default_session()
    return [m.to_payload() for m in session.history]
