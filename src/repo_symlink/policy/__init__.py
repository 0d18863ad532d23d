"""Reconciliation policy model and storage."""

from .models import (
    DEFAULT_DIR_IGNORE,
    DEFAULT_DIR_LINK,
    FlagField,
    FlagUpdate,
    ListField,
    ListUpdate,
    PolicyUpdate,
    ReconciliationPolicy,
    add_entry,
    apply_updates,
    parse_policy_changes,
    remove_entry,
)
from .store import PolicyStore

__all__ = [
    "DEFAULT_DIR_IGNORE",
    "DEFAULT_DIR_LINK",
    "FlagField",
    "FlagUpdate",
    "ListField",
    "ListUpdate",
    "PolicyStore",
    "PolicyUpdate",
    "ReconciliationPolicy",
    "add_entry",
    "apply_updates",
    "parse_policy_changes",
    "remove_entry",
]
