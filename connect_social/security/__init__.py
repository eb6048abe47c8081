"""Row security, identity binding and privileged relationship helpers."""
from .errors import CyclicPolicyError, PolicyViolationError
from .identity import (
    AUTH_UID_KEY,
    PROFILE_ID_KEY,
    bind_identity,
    current_profile_id,
    elevated,
    is_privileged,
    resolve_profile,
)
from .policies import PolicyContext, RowSecurity, TablePolicy, row_security, unchanged, visible, visible_ids
from .rules import group_member_policy, install_policies

__all__ = [
    "AUTH_UID_KEY",
    "PROFILE_ID_KEY",
    "CyclicPolicyError",
    "PolicyContext",
    "PolicyViolationError",
    "RowSecurity",
    "TablePolicy",
    "bind_identity",
    "current_profile_id",
    "elevated",
    "group_member_policy",
    "install_policies",
    "is_privileged",
    "resolve_profile",
    "row_security",
    "unchanged",
    "visible",
    "visible_ids",
]
