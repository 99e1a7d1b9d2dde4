"""ABI layout resolution.

Turns a contract ABI into positioned columns. Nothing here looks at on-chain data:
every offset follows from the argument's index inside its column group.

Offsets are 1-based (SQL ``SUBSTR`` semantics) into the raw hex strings stored in
the warehouse:

* ``input``  -- ``0x`` + 8-char selector, then one 64-char word per argument.
* ``data``   -- ``0x`` + one 64-char word per unindexed event argument.
* ``topics`` -- ``0x``-prefixed topics joined by ``,``; topic0 is the signature hash,
  so the first indexed argument starts after ``0x<64>,0x``.
"""
from __future__ import annotations

import json
import re
from typing import Any, Iterable

from eth_utils import encode_hex, keccak
from eth_utils.abi import collapse_if_tuple

from .errors import SourceRowError
from .models import WORD_WIDTH, AbiEvent, AbiMethod, Column, ContractAbi
from .value_types import Address, SigHash, Selector

FN_INITIAL_OFFSET = 11          # "0x" + 8-char selector + 1
DATA_INITIAL_OFFSET = 3         # "0x" + 1
TOPICS_INITIAL_OFFSET = 70      # "0x" + topic0 + "," + "0x" + 1
TOPIC_SEPARATOR_WIDTH = 3       # "," + "0x" between joined topics
TOPIC_STRIDE = WORD_WIDTH + TOPIC_SEPARATOR_WIDTH

_IGNORED_TYPES = {"constructor", "fallback", "receive", "error"}
_TYPE_RE = re.compile(r"^([a-z]+)(\d+(?:x\d+)?)?((?:\[\d*\])*)$")
_ALIASES = {"uint": "uint256", "int": "int256", "fixed": "fixed128x18", "ufixed": "ufixed128x18"}


# ---------- offsets -----------------------------------------------------------

def fn_start(idx: int) -> int:
    return FN_INITIAL_OFFSET + idx * WORD_WIDTH

def data_start(idx: int) -> int:
    return DATA_INITIAL_OFFSET + idx * WORD_WIDTH

def topic_start(idx: int) -> int:
    return TOPICS_INITIAL_OFFSET + idx * TOPIC_STRIDE

def column_name(name: str, idx: int) -> str:
    return name if name else f"inp_{idx}"


# ---------- types & signatures ------------------------------------------------

def _valid_size(base: str, size: str) -> bool:
    if base in ("uint", "int"):
        n = int(size)
        return 8 <= n <= 256 and n % 8 == 0
    if base == "bytes":
        return 1 <= int(size) <= 32
    if base in ("fixed", "ufixed"):
        m, _, n = size.partition("x")
        return bool(n) and 8 <= int(m) <= 256 and int(m) % 8 == 0 and 0 < int(n) <= 80
    return False


def canonical_type(arg: dict[str, Any]) -> str:
    """Canonical ABI type used in signatures, e.g. ``uint`` -> ``uint256``, tuples collapsed."""
    raw = arg.get("type")
    if not isinstance(raw, str) or not raw:
        raise ValueError(f"missing type for argument {arg.get('name')!r}")
    m = _TYPE_RE.match(raw.strip())
    if not m:
        raise ValueError(f"invalid ABI type {raw!r}")
    base, size, arrays = m.group(1), m.group(2) or "", m.group(3)

    if base == "tuple":
        if size:
            raise ValueError(f"invalid ABI type {raw!r}")
        comps = arg.get("components")
        if not isinstance(comps, list):
            raise ValueError(f"tuple argument {arg.get('name')!r} has no components")
        canon = {"type": "tuple" + arrays,
                 "components": [{"type": canonical_type(c)} for c in comps]}
        return collapse_if_tuple(canon)

    if not size:
        if base in _ALIASES:
            return _ALIASES[base] + arrays
        if base in ("address", "bool", "string", "bytes", "function"):
            return base + arrays
    elif base in ("uint", "int", "bytes", "fixed", "ufixed") and _valid_size(base, size):
        return base + size + arrays
    raise ValueError(f"invalid ABI type {raw!r}")


def signature_of(name: str, types: Iterable[str]) -> str:
    return f"{name}({','.join(types)})"

def sig_hash(signature: str) -> SigHash:
    return SigHash(encode_hex(keccak(text=signature)))

def selector_of(signature: str) -> Selector:
    return Selector(sig_hash(signature)[:10])


def _unique_name(name: str, used: set[str]) -> str:
    # first declaration keeps its name; overloads get name0, name1, ...
    # unquoted view names fold to upper case, so "Transfer" and "transfer" collide
    candidate, n = name, 0
    while candidate.upper() in used:
        candidate = f"{name}{n}"; n += 1
    used.add(candidate.upper())
    return candidate


# ---------- parsing -----------------------------------------------------------

def _check_args(args: Any, where: str) -> None:
    if not isinstance(args, list) or not all(isinstance(a, dict) for a in args):
        raise ValueError(f"{where} has malformed inputs")
    for a in args:
        name = a.get("name")
        if name is not None and not isinstance(name, str):
            raise ValueError(f"{where} has a non-string argument name {name!r}")
        if "components" in a:
            _check_args(a["components"], f"{where} tuple component")


def parse_abi(abi_json: bytes | str, contract_address: str) -> list[dict[str, Any]]:
    """Decode ABI JSON into the event/function entries we generate views for."""
    try:
        doc = json.loads(abi_json)
    except (TypeError, ValueError) as e:
        raise SourceRowError(contract_address, f"invalid ABI JSON: {e}") from e
    if isinstance(doc, dict) and "abi" in doc:
        doc = doc["abi"]
    if not isinstance(doc, list):
        raise SourceRowError(contract_address, f"ABI must be a JSON array, got {type(doc).__name__}")

    entries: list[dict[str, Any]] = []
    for i, entry in enumerate(doc):
        if not isinstance(entry, dict):
            raise SourceRowError(contract_address, f"ABI entry {i} is not an object")
        kind = entry.get("type") or "function"
        if not isinstance(kind, str):
            raise SourceRowError(contract_address, f"unrecognised ABI entry type {kind!r}")
        if kind in _IGNORED_TYPES:
            continue
        if kind not in ("function", "event"):
            raise SourceRowError(contract_address, f"unrecognised ABI entry type {kind!r}")
        name = entry.get("name")
        if not isinstance(name, str) or not name:
            raise SourceRowError(contract_address, f"ABI {kind} entry {i} has no name")
        inputs = entry.get("inputs", [])
        try:
            _check_args(inputs, f"ABI {kind} {name!r}")
            types = [canonical_type(a) for a in inputs]
        except ValueError as e:
            raise SourceRowError(contract_address, f"{kind} {name!r}: {e}") from e
        entries.append({**entry, "type": kind, "inputs": inputs, "_types": types})
    return entries


# ---------- resolution --------------------------------------------------------

def event_columns(inputs: list[dict[str, Any]], types: list[str]) -> tuple[Column, ...]:
    cols: list[Column] = []
    n_indexed = n_data = 0
    for idx, (arg, typ) in enumerate(zip(inputs, types)):
        name = column_name(arg.get("name") or "", idx)
        if arg.get("indexed"):
            cols.append(Column("topics", name, typ, True, topic_start(n_indexed)))
            n_indexed += 1
        else:
            cols.append(Column("data", name, typ, False, data_start(n_data)))
            n_data += 1
    return tuple(cols)


def method_columns(inputs: list[dict[str, Any]], types: list[str]) -> tuple[Column, ...]:
    return tuple(
        Column("input", column_name(arg.get("name") or "", idx), typ, False, fn_start(idx))
        for idx, (arg, typ) in enumerate(zip(inputs, types))
    )


def resolve_contract(contract_address: str, entries: list[dict[str, Any]], namespace: str) -> ContractAbi:
    """Pure function of ABI shape and argument order."""
    addr = Address(contract_address)
    events: list[AbiEvent] = []
    methods: list[AbiMethod] = []
    used_events: set[str] = set()
    used_methods: set[str] = set()

    for entry in entries:
        raw_name: str = entry["name"]
        inputs = entry["inputs"]
        types = entry.get("_types") or [canonical_type(a) for a in inputs]
        signature = signature_of(raw_name, types)
        if entry["type"] == "event":
            events.append(AbiEvent(
                name=_unique_name(raw_name, used_events),
                raw_name=raw_name,
                contract_address=addr,
                namespace=namespace,
                signature=signature,
                sig_hash=sig_hash(signature),
                columns=event_columns(inputs, types),
                anonymous=bool(entry.get("anonymous", False)),
            ))
        else:
            methods.append(AbiMethod(
                name=_unique_name(raw_name, used_methods),
                raw_name=raw_name,
                contract_address=addr,
                namespace=namespace,
                signature=signature,
                selector=selector_of(signature),
                columns=method_columns(inputs, types),
            ))

    return ContractAbi(contract_address=addr, namespace=namespace,
                       events=tuple(events), methods=tuple(methods))
