"""
Serialization utilities for the DEX pool feed.

JSON encoding for Decimal, HexBytes, enums, datetimes and uint256-sized integers.

Usage:
    from shared.serialization_utils import DecimalEncoder
    json.dumps(data, cls=DecimalEncoder)
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from json import JSONEncoder
from typing import Any

from hexbytes import HexBytes


class DecimalEncoder(JSONEncoder):
    """
    JSON encoder handling Decimal, HexBytes, enums, datetimes and large integers.

    Integers beyond the IEEE 754 double safe range (2^53 - 1) are written as
    strings so raw token amounts survive a round trip through JavaScript tools.
    """

    _MAX_SAFE_INTEGER = 2**53 - 1

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (HexBytes, bytes)):
            return "0x" + bytes(obj).hex()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, datetime):
            return obj.isoformat()
        # web3.py AttributeDict
        if hasattr(obj, "__iter__") and hasattr(obj, "keys"):
            return dict(obj)
        return super().default(obj)

    def encode(self, obj: Any) -> str:
        """Convert large integers to strings before JSON serialization."""
        return super().encode(self._convert_large_ints(obj))

    def _convert_large_ints(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: self._convert_large_ints(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._convert_large_ints(item) for item in obj]
        elif isinstance(obj, bool):
            return obj
        elif isinstance(obj, int) and (obj > self._MAX_SAFE_INTEGER or obj < -self._MAX_SAFE_INTEGER):
            return str(obj)
        return obj


def dumps(obj: Any) -> str:
    """json.dumps with DecimalEncoder."""
    return json.dumps(obj, cls=DecimalEncoder)
