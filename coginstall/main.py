from __future__ import annotations

import argparse
import logging
import signal
from typing import Any, Dict, List, Optional

import yaml

from .config import BootstrapConfig, default_config_path, load_config
from .errors import BootstrapError
from .lib.env import Environment
from .logging_utils import configure_logging
from .pipeline import Step, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    CheckPrerequisitesStep,
    CleanupDownloadsStep,
    ConfigureGpuRuntimeStep,
    EnsureSnapStep,
    InstallCudaStep,
    InstallDockerStep,
    InstallMinicondaStep,
    InstallShellFrameworkStep,
    InstallUtilitiesStep,
    PullImageStep,
    UpdateSystemStep,
    WaitForDockerStep,
)

logger = logging.getLogger(__name__)

# Raised while reading the config or the utilities catalog it points at.
CONFIG_ERRORS = (OSError, ValueError, yaml.YAMLError)


def build_steps(config: BootstrapConfig) -> List[Step]:
    return [
        CheckPrerequisitesStep(),
        EnsureSnapStep(config),
        UpdateSystemStep(config),
        InstallUtilitiesStep(config),
        InstallDockerStep(config),
        InstallMinicondaStep(config),
        InstallCudaStep(config),
        ConfigureGpuRuntimeStep(config),
        CleanupDownloadsStep(config),
        WaitForDockerStep(config),
        PullImageStep(config),
        InstallShellFrameworkStep(config),
    ]


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt(f"signal {signum}")


def run(
    *,
    config: BootstrapConfig,
    env: Environment,
    state_path: Optional[str] = None,
    log_path: Optional[str] = None,
    verbose: bool = False,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    steps: Optional[List[Step]] = None,
) -> Dict[str, Any]:
    """Run the bootstrap sequence, persisting state for later inspection.

    When ``log_path`` is given, logging is configured here and both the
    requested and the actual log file are recorded in the state.
    """

    state_path = state_path or config.state_path
    state = ensure_defaults(load_state(state_path))

    if log_path:
        actual_log_path = configure_logging(log_path, verbose=verbose)
        paths = state.setdefault("execution", {}).setdefault("paths", {})
        paths["log_path_requested"] = log_path
        paths["log_path_actual"] = actual_log_path
        env.hand_over(actual_log_path)

    try:
        steps = steps if steps is not None else build_steps(config)
        result = run_pipeline(
            env=env,
            state=state,
            steps=steps,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        state.setdefault("execution", {})["summary"] = {
            "ran_steps": result.ran_steps,
            "skipped_steps": result.skipped_steps,
            "dry_run": env.dry_run,
        }
        return state
    except BaseException as e:
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e) or type(e).__name__,
                "recoverable": bool(getattr(e, "recoverable", False)),
            }
        )
        raise
    finally:
        save_state(state_path, state)
        env.hand_over(state_path)


def _log_summary(state: Dict[str, Any]) -> None:
    exe = state.get("execution") or {}
    summary = exe.get("summary") or {}
    logger.info("Ran steps: %s", ", ".join(summary.get("ran_steps") or []) or "none")
    logger.info("Skipped steps: %s", ", ".join(summary.get("skipped_steps") or []) or "none")
    logger.info("Decisions: %s", exe.get("decisions") or {})
    if (exe.get("decisions") or {}).get("relogin_required"):
        logger.warning("Log out and back in (or reboot) for docker group membership to take effect")
    logger.info("Installation complete. Reboot to make sure all changes take effect.")


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="coginstall", description="Provision an Ubuntu host for GPU development")
    p.add_argument("--config", default=None, help="Path to YAML config (default: ~/.config/coginstall/config.yaml)")
    p.add_argument("--state", default=None, help="Path to state file (json|yaml)")
    p.add_argument("--log", default=None, help="Path to log file")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 40_install_docker)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Run step actions even if already satisfied")
    p.add_argument("--dry-run", action="store_true", help="Log mutating commands without executing them")
    p.add_argument("--verbose", action="store_true", help="Show debug output on the console")
    p.add_argument("--list-steps", action="store_true", help="Print the step catalog and exit")

    args = p.parse_args(argv)
    env = Environment(dry_run=bool(args.dry_run))
    config_path = args.config or default_config_path(env.home)

    try:
        config = load_config(config_path, home=env.home)
        steps = build_steps(config)
    except CONFIG_ERRORS as e:
        logger.error("Invalid configuration %s: %s", config_path, e)
        return 1

    if args.list_steps:
        for step in steps:
            print(f"{step.step_id}\t{step.description}")
        return 0

    previous_sigterm = signal.signal(signal.SIGTERM, _raise_interrupt)

    try:
        state = run(
            config=config,
            env=env,
            state_path=args.state,
            log_path=args.log or config.log_path,
            verbose=bool(args.verbose),
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=bool(args.force),
            steps=steps,
        )
    except KeyboardInterrupt:
        logger.error("Interrupted by user")
        return 1
    except BootstrapError as e:
        logger.error("%s", e)
        if e.recoverable:
            logger.error("This failure may be transient; re-run coginstall to resume")
        return 1
    except Exception:
        logger.exception("Bootstrap failed")
        return 1
    finally:
        signal.signal(signal.SIGTERM, previous_sigterm)

    _log_summary(state)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
