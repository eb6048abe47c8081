"""Exceptions raised by the row security layer."""
from __future__ import annotations

__all__ = ["PolicyViolationError", "CyclicPolicyError"]


class PolicyViolationError(PermissionError):
    """A write was rejected by a table's row security policy.

    Reads never raise this: rows the caller may not see are filtered out.
    """

    def __init__(self, table: str, command: str, *, new_row: bool = True) -> None:
        self.table = table
        self.command = command
        if new_row:
            message = f'new row violates row-level security policy for table "{table}"'
        else:
            message = f'row-level security policy for table "{table}" denies {command}'
        super().__init__(message)


class CyclicPolicyError(RuntimeError):
    """A policy predicate for a table tried to evaluate that same table's policy."""

    def __init__(self, chain: tuple[str, ...]) -> None:
        self.chain = chain
        super().__init__(
            "infinite recursion detected in policy for relation "
            f'"{chain[-1]}" (evaluation chain: {" -> ".join(chain)})'
        )
