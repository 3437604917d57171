"""Turn caller supplied form values into the text that goes on the wire.

Field values arrive dynamically typed (whatever the host passed in its ``data``
map). They are classified once into a ``TypedValue`` and every kind has exactly
one serialization:

    NULL      -> "null"
    BOOLEAN   -> "true" / "false"
    NUMBER    -> repr(float(value))  e.g. 5 -> "5.0", 0.1 -> "0.1", 1e21 -> "1e+21"
                 nan -> "NaN", inf -> "Infinity", -inf -> "-Infinity"
                 str(value) when there is no double for it, e.g. 10**400, Decimal("sNaN")
    ARRAY/MAP -> str(value)          e.g. "[1, 'a']", "{'k': 1}"  (NOT JSON)
    STRING    -> the text itself (bytes are decoded as UTF-8)
"""

from __future__ import annotations

import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from filetransfer.exceptions import TypeConversionError


class FieldType(Enum):
    """The kinds of value a form field can hold."""
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    MAP = "map"


@dataclass(frozen=True)
class TypedValue:
    """A form value tagged with its kind."""
    kind: FieldType
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> 'TypedValue':
        """Classify a plain Python value. Unknown types land in STRING."""
        if isinstance(value, TypedValue):
            return value
        if value is None:
            return cls(FieldType.NULL)
        # bool is an int subclass so it has to be checked first
        if isinstance(value, bool):
            return cls(FieldType.BOOLEAN, value)
        if isinstance(value, (numbers.Real, Decimal)):
            return cls(FieldType.NUMBER, value)
        if isinstance(value, (list, tuple)):
            return cls(FieldType.ARRAY, value)
        if isinstance(value, Mapping):
            return cls(FieldType.MAP, value)
        return cls(FieldType.STRING, value)


def encode_field(value: Any, key: str = None) -> str:
    """Serialize a field value to its form-data text.

    Args:
        value (Any): a TypedValue or a plain Python value
        key (str, optional): field name, only used in error messages

    Raises:
        TypeConversionError: the value fell through to STRING but is not string-like

    Returns:
        str: the text to send
    """
    typed = TypedValue.of(value)
    kind = typed.kind

    if kind is FieldType.NULL:
        return "null"
    if kind is FieldType.BOOLEAN:
        return "true" if typed.value else "false"
    if kind is FieldType.NUMBER:
        return _encode_number(typed.value)
    if kind is FieldType.ARRAY or kind is FieldType.MAP:
        return str(typed.value)
    if kind is FieldType.STRING:
        raw = typed.value
        if isinstance(raw, str):
            return raw
        if isinstance(raw, (bytes, bytearray)):
            try:
                return bytes(raw).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise TypeConversionError(key, raw) from exc
        raise TypeConversionError(key, raw)

    raise TypeConversionError(key, typed.value)


def _encode_number(value) -> str:
    try:
        number = float(value)
    except (OverflowError, ValueError):
        # out of double range or a signaling NaN
        return str(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    return repr(number)
