"""Error taxonomy for the bootstrap sequencer.

Nothing here is retried in-process. ``recoverable`` only tells the operator
whether simply re-running the bootstrapper has a chance of succeeding.
"""

from __future__ import annotations

from typing import Sequence


class BootstrapError(Exception):
    recoverable = False


class PrerequisiteError(BootstrapError):
    """Required host tools are missing; raised before any mutation."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Required tools not installed: {', '.join(self.missing)}")


class CommandError(BootstrapError, RuntimeError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str, cmdline: str):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Command failed ({returncode}): {cmdline}\n{stderr}")


class StepVerificationError(BootstrapError):
    def __init__(self, step_id: str):
        self.step_id = step_id
        super().__init__(f"Step {step_id} ran but its effect is not present on the host")


class ReadinessTimeout(BootstrapError):
    """A polled service did not become ready in time."""

    recoverable = True

    def __init__(self, what: str, timeout: float):
        self.what = what
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s waiting for {what}")
