"""Diagnostic scan of outgoing payloads for other firms' references."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

FIRM_KEYS = frozenset({"firm_id", "firmId"})


@dataclass(frozen=True)
class LeakFinding:
    """A firm reference in a payload that is not the caller's firm."""

    path: str
    key: str
    firm_id: Any


def find_firm_leaks(payload: Any, firm_id: int | None, max_depth: int = 64) -> list[LeakFinding]:
    """Walk a decoded payload and report foreign firm references.

    Dicts, lists, tuples and pydantic models are traversed. Shared or cyclic
    containers are visited once and traversal stops at ``max_depth``, so
    the scan always terminates.

    Args:
        payload: Decoded JSON or a pydantic model
        firm_id: The caller's firm
        max_depth: Nesting limit

    Returns:
        One finding per ``firm_id``/``firmId`` key with a non-null value
        different from ``firm_id``.
    """
    findings: list[LeakFinding] = []
    seen: set[int] = set()

    def walk(node: Any, path: str, depth: int) -> None:
        if depth > max_depth:
            return
        if isinstance(node, BaseModel):
            node = node.model_dump()
        if isinstance(node, Mapping):
            if id(node) in seen:
                return
            seen.add(id(node))
            for key, value in node.items():
                child = f"{path}.{key}" if path else str(key)
                if key in FIRM_KEYS and value is not None and value != firm_id:
                    findings.append(LeakFinding(path=child, key=str(key), firm_id=value))
                walk(value, child, depth + 1)
        elif isinstance(node, list | tuple):
            if id(node) in seen:
                return
            seen.add(id(node))
            for index, item in enumerate(node):
                walk(item, f"{path}[{index}]", depth + 1)

    walk(payload, "", 0)
    return findings
