from __future__ import annotations
from typing import NewType, Literal

Address = NewType("Address", str)   # 0x-prefixed contract address, as stored in the warehouse
SigHash = NewType("SigHash", str)   # 66-char 0x keccak hash of an event signature
Selector = NewType("Selector", str) # 10-char 0x method id
ColumnSource = Literal["topics", "data", "input"]
MemberKind = Literal["evt", "fn"]
