"""Minimal demonstration of the streaming chat session."""

import sys

from deepseek_chat.api.service import get_default_session

if __name__ == "__main__":
    question = " ".join(sys.argv[1:]) or "用一句话介绍一下你自己"
    session = get_default_session()
    session.on_delta = lambda text: print(text, end="", flush=True)
    print("User:", question)
    print("Agent: ", end="")
    result = session.run_turn(question)
    print()
    if not result.success:
        print("Error:", result.error)
