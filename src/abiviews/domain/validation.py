from __future__ import annotations
import logging

from .models import AbiEvent, AbiMethod, ContractAbi, Resolution, Resolved, Skipped

log = logging.getLogger(__name__)

SNOWFLAKE_IDENTIFIER_MAX_LENGTH = 255

# "_" + "_evt_" and "_" + "_fn_" around namespace, address and name
EVENT_DECORATION = 6
METHOD_DECORATION = 5


def view_name(member: AbiEvent | AbiMethod) -> str:
    infix = "evt" if isinstance(member, AbiEvent) else "fn"
    return f"{member.namespace}_{member.contract_address}_{infix}_{member.name}"


def view_name_length(member: AbiEvent | AbiMethod) -> int:
    decoration = EVENT_DECORATION if isinstance(member, AbiEvent) else METHOD_DECORATION
    return len(member.namespace) + len(member.contract_address) + len(member.name) + decoration


def validate_contract(contract: ContractAbi, max_length: int = SNOWFLAKE_IDENTIFIER_MAX_LENGTH) -> Resolution:
    """All or nothing: one overlong view name skips the whole contract."""
    for member in (*contract.events, *contract.methods):
        n = view_name_length(member)
        if n > max_length:
            kind = "event" if isinstance(member, AbiEvent) else "method"
            reason = f"{kind} name too long: {member.name} ({n} > {max_length})"
            log.info("skipping contract %s: %s", contract.contract_address, reason)
            return Skipped(contract, reason)
    return Resolved(contract)
