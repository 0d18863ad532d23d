"""JSON persistence for the reconciliation policy."""

from __future__ import annotations

import json
from pathlib import Path

from repo_symlink.policy.models import ReconciliationPolicy, apply_updates, parse_policy_changes


class PolicyStore:
    """Loads and atomically saves the policy blob."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Return on-disk JSON path."""
        return self._path

    def load(self) -> ReconciliationPolicy:
        """Return stored values merged over defaults."""
        if not self._path.exists():
            return ReconciliationPolicy()
        with self._path.open("r", encoding="utf-8") as handle:
            try:
                payload = json.load(handle)
            except json.JSONDecodeError as error:
                raise ValueError(f"Policy file {self._path} is not valid JSON.") from error
        if not isinstance(payload, dict):
            raise ValueError(f"Policy file {self._path} must contain a JSON object.")
        return apply_updates(ReconciliationPolicy(), parse_policy_changes(payload))

    def save(self, policy: ReconciliationPolicy) -> None:
        """Write the policy through a temporary file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(policy.to_dict(), handle, sort_keys=True, indent=2)
            handle.write("\n")
        tmp.replace(self._path)
