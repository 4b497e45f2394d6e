from .base import Codec
from .json_codec import CodecError, JSONCodec

__all__ = ["Codec", "CodecError", "JSONCodec"]
