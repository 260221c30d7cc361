from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .errors import StepVerificationError
from .lib.env import Environment
from .state_store import mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single idempotent step."""

    step_id: str
    description: str

    def check(self, env: Environment) -> bool:
        """Return True when the step's effect is already present."""
        ...

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def verify(self, env: Environment) -> bool:
        ...


class BaseStep:
    step_id = ""
    description = ""

    def check(self, env: Environment) -> bool:
        return False

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def verify(self, env: Environment) -> bool:
        return self.check(env)


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def select_steps(
    steps: Sequence[Step],
    *,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> List[Step]:
    ids = [s.step_id for s in steps]
    for name, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in ids:
            raise ValueError(f"Unknown step for {name}: {value!r} (known: {', '.join(ids)})")
    if start_at is not None and stop_after is not None and ids.index(stop_after) < ids.index(start_at):
        raise ValueError(f"stop_after {stop_after!r} comes before start_at {start_at!r}")

    started = start_at is None
    selected: List[Step] = []
    for step in steps:
        if not started:
            if step.step_id != start_at:
                continue
            started = True
        selected.append(step)
        if stop_after is not None and step.step_id == stop_after:
            break
    return selected


def run_pipeline(
    *,
    env: Environment,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run steps in order: skip satisfied ones, run and verify the rest.

    The first exception aborts the run; there is no rollback.
    """

    ran: List[str] = []
    skipped: List[str] = []

    for step in select_steps(steps, start_at=start_at, stop_after=stop_after):
        state.setdefault("execution", {})["current_step"] = step.step_id

        if (not force) and step.check(env):
            logger.info("Skipping step %s (already satisfied)", step.step_id)
            skipped.append(step.step_id)
            mark_step_completed(state, step.step_id)
            continue

        logger.info("Running step %s: %s", step.step_id, step.description)
        state = step.run(env, state)

        if env.dry_run:
            logger.info("Dry run: not verifying %s", step.step_id)
        elif not step.verify(env):
            raise StepVerificationError(step.step_id)

        mark_step_completed(state, step.step_id)
        ran.append(step.step_id)

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
