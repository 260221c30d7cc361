"""
Tests for the step runner: skip/run/verify semantics and step selection.
"""

from typing import Any, Dict

import pytest

from coginstall.errors import CommandError, StepVerificationError
from coginstall.pipeline import BaseStep, run_pipeline, select_steps
from coginstall.state_store import ensure_defaults


class RecordingStep(BaseStep):
    """Step whose precondition and effect are a flag on the host double."""

    def __init__(self, step_id: str, *, satisfied: bool = False, takes_effect: bool = True):
        self.step_id = step_id
        self.description = f"step {step_id}"
        self.satisfied = satisfied
        self.takes_effect = takes_effect
        self.runs = 0

    def check(self, env) -> bool:
        return self.satisfied

    def run(self, env, state: Dict[str, Any]) -> Dict[str, Any]:
        self.runs += 1
        if self.takes_effect:
            self.satisfied = True
        return state


class FailingStep(BaseStep):
    step_id = "99_fail"
    description = "always fails"

    def run(self, env, state):
        raise CommandError(["false"], 1, "", "false")


class TestRunPipeline:
    def test_satisfied_step_is_skipped(self, host):
        """A true precondition prevents the action from executing."""
        step = RecordingStep("10_a", satisfied=True)
        result = run_pipeline(env=host, state=ensure_defaults({}), steps=[step])

        assert step.runs == 0
        assert result.skipped_steps == ["10_a"]
        assert result.ran_steps == []

    def test_unsatisfied_step_runs_and_is_recorded(self, host):
        step = RecordingStep("10_a")
        result = run_pipeline(env=host, state=ensure_defaults({}), steps=[step])

        assert step.runs == 1
        assert result.ran_steps == ["10_a"]
        assert result.state["execution"]["completed_steps"] == ["10_a"]
        assert result.state["execution"]["current_step"] is None

    def test_steps_run_in_order(self, host):
        order = []

        class Ordered(RecordingStep):
            def run(self, env, state):
                order.append(self.step_id)
                return super().run(env, state)

        steps = [Ordered("10_a"), Ordered("20_b"), Ordered("30_c")]
        run_pipeline(env=host, state=ensure_defaults({}), steps=steps)
        assert order == ["10_a", "20_b", "30_c"]

    def test_failed_verification_aborts(self, host):
        broken = RecordingStep("10_a", takes_effect=False)
        after = RecordingStep("20_b")

        with pytest.raises(StepVerificationError) as exc:
            run_pipeline(env=host, state=ensure_defaults({}), steps=[broken, after])

        assert exc.value.step_id == "10_a"
        assert after.runs == 0

    def test_failure_stops_remaining_steps(self, host):
        """Fail-fast: nothing after the failing step runs."""
        first = RecordingStep("10_a")
        after = RecordingStep("20_b")
        state = ensure_defaults({})

        with pytest.raises(CommandError):
            run_pipeline(env=host, state=state, steps=[first, FailingStep(), after])

        assert first.runs == 1
        assert after.runs == 0
        assert state["execution"]["current_step"] == "99_fail"

    def test_force_runs_satisfied_steps(self, host):
        step = RecordingStep("10_a", satisfied=True)
        result = run_pipeline(env=host, state=ensure_defaults({}), steps=[step], force=True)
        assert step.runs == 1
        assert result.ran_steps == ["10_a"]

    def test_dry_run_does_not_verify(self, host):
        host.dry_run = True
        step = RecordingStep("10_a", takes_effect=False)
        result = run_pipeline(env=host, state=ensure_defaults({}), steps=[step])
        assert result.ran_steps == ["10_a"]


class TestSelectSteps:
    @pytest.fixture
    def steps(self):
        return [RecordingStep(i) for i in ("10_a", "20_b", "30_c", "40_d")]

    def test_all_by_default(self, steps):
        assert [s.step_id for s in select_steps(steps)] == ["10_a", "20_b", "30_c", "40_d"]

    def test_start_at(self, steps):
        assert [s.step_id for s in select_steps(steps, start_at="30_c")] == ["30_c", "40_d"]

    def test_stop_after(self, steps):
        assert [s.step_id for s in select_steps(steps, stop_after="20_b")] == ["10_a", "20_b"]

    def test_window(self, steps):
        selected = select_steps(steps, start_at="20_b", stop_after="30_c")
        assert [s.step_id for s in selected] == ["20_b", "30_c"]

    def test_unknown_step_rejected(self, steps):
        with pytest.raises(ValueError, match="99_nope"):
            select_steps(steps, start_at="99_nope")

    def test_inverted_window_rejected(self, steps):
        """stop_after before start_at must not widen to the end of the catalog."""
        with pytest.raises(ValueError, match="comes before"):
            select_steps(steps, start_at="30_c", stop_after="10_a")

    def test_single_step_window(self, steps):
        selected = select_steps(steps, start_at="20_b", stop_after="20_b")
        assert [s.step_id for s in selected] == ["20_b"]
