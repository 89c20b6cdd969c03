"""Phased rollout of slot configurations (pilot -> beta -> production)."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from phoenix.exceptions import RolloutError, UnknownPhaseError
from phoenix.version import ROLLOUT_PHASES

LOGGER = logging.getLogger(__name__)


def is_user_in_rollout(user_id: str, percentage: int) -> bool:
    """Stable bucketing: a user stays in the rollout as the percentage grows."""
    if percentage >= 100:
        return True
    if percentage <= 0:
        return False
    digest = hashlib.sha256(str(user_id).encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % 100 < percentage


@dataclass
class RolloutState:
    phase: str | None = None
    percentage: int = 0
    criteria: str | None = None
    updated_at: str | None = None
    history: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "percentage": self.percentage,
            "criteria": self.criteria,
            "updated_at": self.updated_at,
            "history": list(self.history),
        }


class RolloutManager:
    def __init__(self, state_path: Path) -> None:
        self.state_path = Path(state_path)

    def status(self) -> RolloutState:
        if not self.state_path.exists():
            return RolloutState()
        try:
            data = json.loads(self.state_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise RolloutError(f"Cannot read rollout state {self.state_path}: {exc}") from exc
        return RolloutState(
            phase=data.get("phase"),
            percentage=int(data.get("percentage", 0)),
            criteria=data.get("criteria"),
            updated_at=data.get("updated_at"),
            history=list(data.get("history", [])),
        )

    def includes(self, user_id: str) -> bool:
        """Whether the active phase serves slot configurations to this user."""
        return is_user_in_rollout(user_id, self.status().percentage)

    def _save(self, state: RolloutState) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")

    def rollout(self, phase: str) -> RolloutState:
        config = ROLLOUT_PHASES.get(phase)
        if not config:
            raise UnknownPhaseError(phase)

        state = self.status()
        if state.phase == phase:
            LOGGER.info("Phase %s already active", phase)
            return state

        if state.phase is not None:
            state.history.append(
                {
                    "phase": state.phase,
                    "percentage": state.percentage,
                    "criteria": state.criteria,
                    "updated_at": state.updated_at,
                }
            )

        state.phase = phase
        state.percentage = int(config["percentage"])
        state.criteria = str(config["criteria"])
        state.updated_at = datetime.now(timezone.utc).isoformat()
        self._save(state)
        LOGGER.info("Rolled out to %d%% of users (%s)", state.percentage, state.criteria)
        return state

    def rollback(self, phase: str) -> RolloutState:
        """Undo ``phase`` and restore whatever was active before it."""
        if phase not in ROLLOUT_PHASES:
            raise UnknownPhaseError(phase)

        state = self.status()
        if state.phase != phase:
            raise RolloutError(f"Phase {phase} is not active (current: {state.phase or 'none'})")

        if state.history:
            previous = state.history.pop()
            state.phase = previous.get("phase")
            state.percentage = int(previous.get("percentage", 0))
            state.criteria = previous.get("criteria")
        else:
            state.phase = None
            state.percentage = 0
            state.criteria = None
        state.updated_at = datetime.now(timezone.utc).isoformat()
        self._save(state)
        LOGGER.info("Rolled back phase %s", phase)
        return state
