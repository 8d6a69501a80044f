"""流式协议解码。

- decoder: ChunkDecoder，把任意切分的原始分块解码为 StreamFrame。
"""

from deepseek_chat.streaming.decoder import ChunkDecoder, parse_data_payload

__all__ = ["ChunkDecoder", "parse_data_payload"]
