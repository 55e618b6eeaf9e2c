"""Convert raw batch strings into typed keyword values."""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Mapping, Tuple

from .errors import CoercionError
from .schemas import (
    KeywordDataType,
    KeywordRecordSchema,
    KeywordType,
    TypedKeywordValue,
    TypedValue,
)


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_RE = re.compile(r"^\s*[+-]?[0-9]+\s*$")

# Optional thousands grouping with "," and "." as the decimal point, no exponent.
_DECIMAL_RE = re.compile(
    r"^\s*(?P<sign>[+-]?)(?P<int>[0-9]{1,3}(?:,[0-9]{3})+|[0-9]*)(?:\.(?P<frac>[0-9]*))?\s*$"
)

_FLOAT_RE = re.compile(
    r"^\s*(?P<sign>[+-]?)(?P<int>[0-9]{1,3}(?:,[0-9]{3})+|[0-9]*)(?:\.(?P<frac>[0-9]*))?"
    r"(?P<exp>[eE][+-]?[0-9]+)?\s*$"
)

# Extended ISO 8601 only; an offset needs a time part.
_ISO_RE = re.compile(
    r"^[0-9]{4}-[0-9]{2}-[0-9]{2}"
    r"(?:[T ][0-9]{2}:[0-9]{2}(?::[0-9]{2}(?:\.[0-9]{3}(?:[0-9]{3})?)?)?"
    r"(?:[+-][0-9]{2}:[0-9]{2})?)?$"
)

# Tried in order after ISO 8601.
DATETIME_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
)


class _ParseFailure(ValueError):
    pass


def _parse_integer(raw: str) -> int:
    """Signed ASCII integer within the 64-bit range."""
    if not _INTEGER_RE.match(raw):
        raise _ParseFailure(raw)
    value = int(raw.strip())
    if value < INT64_MIN or value > INT64_MAX:
        raise _ParseFailure(raw)
    return value


def _number_text(match) -> str:
    """Rebuild a plain numeric literal from a decimal or float match."""
    int_part = match.group("int").replace(",", "")
    frac_part = match.group("frac")
    if not int_part and not frac_part:
        raise _ParseFailure(match.string)
    text = match.group("sign") + (int_part or "0")
    if frac_part:
        text += "." + frac_part
    return text


def _parse_decimal(raw: str) -> Decimal:
    """Exact decimal with optional thousands grouping."""
    match = _DECIMAL_RE.match(raw)
    if not match:
        raise _ParseFailure(raw)
    try:
        return Decimal(_number_text(match))
    except InvalidOperation:
        raise _ParseFailure(raw)


def _parse_float(raw: str) -> float:
    """Finite float; an exponent is allowed."""
    match = _FLOAT_RE.match(raw)
    if not match:
        raise _ParseFailure(raw)
    text = _number_text(match) + (match.group("exp") or "")
    value = float(text)
    if value in (float("inf"), float("-inf")):
        raise _ParseFailure(raw)
    return value


def _parse_datetime(raw: str) -> datetime:
    """Extended ISO 8601 (a trailing ``Z`` means UTC), then ``DATETIME_FORMATS``."""
    text = raw.strip()
    if not text or not text.isascii():
        raise _ParseFailure(raw)
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    if _ISO_RE.match(text):
        return datetime.fromisoformat(text)
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise _ParseFailure(raw)


def _parse_date(raw: str) -> datetime:
    """Like ``_parse_datetime`` but truncated to midnight."""
    return _parse_datetime(raw).replace(hour=0, minute=0, second=0, microsecond=0)


_DISPATCH: Dict[KeywordDataType, Tuple[str, Callable[[str], TypedValue]]] = {
    KeywordDataType.ALPHANUMERIC: ("string", str),
    KeywordDataType.CURRENCY: ("decimal", _parse_decimal),
    KeywordDataType.SPECIFIC_CURRENCY: ("decimal", _parse_decimal),
    KeywordDataType.NUMERIC20: ("decimal", _parse_decimal),
    KeywordDataType.DATE: ("datetime", _parse_date),
    KeywordDataType.DATETIME: ("datetime", _parse_datetime),
    KeywordDataType.FLOATING_POINT: ("float", _parse_float),
    KeywordDataType.NUMERIC9: ("integer", _parse_integer),
}


def convert(raw_value: str, data_type: KeywordDataType, keyword_name: str = "") -> Tuple[str, TypedValue]:
    """
    Parse a raw string under the rule for ``data_type``.

    Returns:
        (kind, value) where kind is one of string, integer, decimal, float, datetime

    Raises:
        CoercionError: If the string does not parse as the target type
    """
    try:
        kind, parser = _DISPATCH[KeywordDataType(data_type)]
    except (KeyError, ValueError):
        raise CoercionError(keyword_name, raw_value, str(data_type))
    try:
        return kind, parser(raw_value)
    except (_ParseFailure, ValueError, OverflowError):
        raise CoercionError(keyword_name, raw_value, KeywordDataType(data_type).value) from None


def coerce(raw_value: str, keyword_type: KeywordType) -> TypedKeywordValue:
    """Coerce a raw string into a value for ``keyword_type``."""
    kind, value = convert(raw_value, keyword_type.data_type, keyword_type.name)
    return TypedKeywordValue(keyword_type=keyword_type, kind=kind, value=value)


def coerce_keywords(
    raw_keywords: Mapping[str, str],
    schema: KeywordRecordSchema,
) -> List[TypedKeywordValue]:
    """
    Coerce every raw keyword the schema knows, in schema order.

    Names missing from the schema are ignored. Required keywords that are
    absent are left for the repository to reject.
    """
    values: List[TypedKeywordValue] = []
    for keyword_type in schema.keyword_types:
        if keyword_type.name in raw_keywords:
            values.append(coerce(raw_keywords[keyword_type.name], keyword_type))
    return values


def format_value(value: TypedValue, data_type: KeywordDataType) -> str:
    """Canonical string form of a typed value; parses back to the same value."""
    data_type = KeywordDataType(data_type)
    if data_type == KeywordDataType.ALPHANUMERIC:
        return str(value)
    if data_type in (
        KeywordDataType.CURRENCY,
        KeywordDataType.SPECIFIC_CURRENCY,
        KeywordDataType.NUMERIC20,
    ):
        return format(Decimal(value), "f")
    if data_type == KeywordDataType.FLOATING_POINT:
        return repr(float(value))
    if data_type == KeywordDataType.NUMERIC9:
        return str(int(value))
    if data_type == KeywordDataType.DATE:
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    return value.isoformat()
