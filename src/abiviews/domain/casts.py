from __future__ import annotations
import re

from .models import Column

# widest integer still exact in NUMBER(38, 0) after hex parsing
MAX_NUMERIC_BITS = 120

_INT_RE = re.compile(r"^(u?)int(\d+)$")
_BYTES_RE = re.compile(r"^bytes(\d+)$")


def _substr(src: str, start: int, width: int) -> str:
    return f"SUBSTR({src}, {start}, {width})"

def _hex(src: str, start: int, width: int) -> str:
    return f"'0x' || {_substr(src, start, width)}"

def _to_number(expr: str, digits: int) -> str:
    return f"TO_NUMBER(UPPER({expr}), '{'X' * digits}')"


def column_expr(col: Column, src: str | None = None) -> str:
    """SQL expression extracting and casting one ABI word from its source column."""
    src = src or col.source
    start, width, typ = col.start, col.width, col.abi_type

    if typ == "address":
        return _hex(src, start + 24, 40)
    if typ == "bool":
        return f"({_substr(src, start + width - 1, 1)} = '1')"

    m = _INT_RE.match(typ)
    if m and int(m.group(2)) <= MAX_NUMERIC_BITS:
        bits = int(m.group(2))
        digits = bits // 4
        tail = start + width - digits
        value = _to_number(_substr(src, tail, digits), digits)
        if m.group(1):
            return value
        sign = _to_number(_substr(src, tail, 1), 1)
        return f"({value} - IFF({sign} >= 8, {2 ** bits}, 0))"

    m = _BYTES_RE.match(typ)
    if m:
        return _hex(src, start, 2 * int(m.group(1)))

    # dynamic types, arrays, tuples, wide integers, fixed point: raw word
    return _hex(src, start, width)


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'
