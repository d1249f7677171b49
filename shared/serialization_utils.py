"""
Serialization utilities for the swap aggregator router.

Provides JSON encoding for Decimal, enums, dataclasses (transaction
records, performance rows) and integers beyond the IEEE 754 safe range.

Usage:
    from shared.serialization_utils import DecimalEncoder
    json.dumps(data, cls=DecimalEncoder)
"""

import dataclasses
import json
from decimal import Decimal
from enum import Enum
from json import JSONEncoder
from types import MappingProxyType
from typing import Any


class DecimalEncoder(JSONEncoder):
    """
    JSON encoder for route records.

    Decimals become strings, enums their value, dataclasses and mapping
    proxies plain objects. Integers outside +/-(2**53 - 1) are written as
    strings so wei amounts survive JavaScript consumers.
    """

    _MAX_SAFE_INTEGER = 2**53 - 1

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, bytes):
            return "0x" + obj.hex()
        if isinstance(obj, MappingProxyType):
            return dict(obj)
        return super().default(obj)

    def encode(self, obj: Any) -> str:
        return super().encode(self._convert_large_ints(obj))

    def iterencode(self, obj: Any, _one_shot: bool = False):
        return super().iterencode(self._convert_large_ints(obj), _one_shot)

    def _convert_large_ints(self, obj: Any) -> Any:
        # Dataclasses are flattened first so nested wei fields are visited
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            obj = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        if isinstance(obj, (dict, MappingProxyType)):
            return {str(self._key(k)): self._convert_large_ints(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._convert_large_ints(item) for item in obj]
        elif isinstance(obj, bool):
            return obj
        elif isinstance(obj, int) and (obj > self._MAX_SAFE_INTEGER or obj < -self._MAX_SAFE_INTEGER):
            return str(obj)
        return obj

    @staticmethod
    def _key(key: Any) -> Any:
        return key.value if isinstance(key, Enum) else key


def to_json(obj: Any, indent: int | None = None) -> str:
    """Serialize records (dataclasses, Decimals, wei ints) to a JSON string."""
    return json.dumps(obj, cls=DecimalEncoder, indent=indent)
