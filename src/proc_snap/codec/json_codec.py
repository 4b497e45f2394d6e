"""Tagged JSON codec.

Records are written as ``{"kind": <KIND>, "data": {...fields}}`` so the
decoder knows which dataclass to rebuild::

    {"kind": "loadavg", "data": {"timestamp": 1700000000000000000, "minute": 0.2, ...}}
"""

from __future__ import annotations

import dataclasses
import json
import types
import typing
from typing import Any, Union

from ..errors import ProcSnapError
from .base import Codec


class CodecError(ProcSnapError):
    """Bytes that do not decode to a known record."""


class JSONCodec(Codec):
    def __init__(self, record_types: dict[str, type] | None = None) -> None:
        if record_types is None:
            from ..collector import RECORD_TYPES

            record_types = RECORD_TYPES
        self._types = record_types

    def encode(self, record: Any) -> dict[str, Any]:
        """Tagged dict form of *record*, ready for ``json.dumps``."""
        kind = getattr(type(record), "KIND", None)
        if kind is None or not dataclasses.is_dataclass(record):
            raise CodecError(f"cannot encode {type(record).__name__}: not a snapshot record")
        return {"kind": kind, "data": dataclasses.asdict(record)}

    def serialize(self, record: Any) -> bytes:
        return json.dumps(self.encode(record), separators=(",", ":")).encode("utf-8")

    def decode(self, obj: Any) -> Any:
        try:
            kind = obj["kind"]
            data = obj["data"]
        except (KeyError, TypeError) as exc:
            raise CodecError(f"missing kind/data envelope: {exc}") from exc
        try:
            cls = self._types[kind]
        except KeyError:
            raise CodecError(f"unknown record kind {kind!r}") from None
        return _build(cls, data)

    def deserialize(self, data: bytes) -> Any:
        try:
            obj = json.loads(data)
        except ValueError as exc:
            raise CodecError(f"invalid JSON: {exc}") from exc
        return self.decode(obj)


def _build(tp: Any, value: Any) -> Any:
    if value is None:
        return None
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        inner = [arg for arg in typing.get_args(tp) if arg is not type(None)]
        return _build(inner[0], value) if len(inner) == 1 else value
    if origin is list:
        (item_type,) = typing.get_args(tp)
        return [_build(item_type, item) for item in value]
    if dataclasses.is_dataclass(tp):
        if not isinstance(value, dict):
            raise CodecError(f"expected an object for {tp.__name__}, got {type(value).__name__}")
        hints = typing.get_type_hints(tp)
        kwargs = {
            f.name: _build(hints[f.name], value[f.name])
            for f in dataclasses.fields(tp)
            if f.name in value
        }
        return tp(**kwargs)
    if tp is float and isinstance(value, int):
        return float(value)
    return value
