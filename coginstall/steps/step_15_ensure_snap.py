from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.pkg import apt_install
from ..lib.poll import wait_until
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)


class EnsureSnapStep(BaseStep):
    step_id = "15_ensure_snap"
    description = "Install snap and wait for snapd"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def check(self, env: Environment) -> bool:
        return env.has_command("snap") and env.service_active("snapd")

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        if env.has_command("snap"):
            logger.info("snap is already installed")
        else:
            apt_install(env, ["snapd"])

        if env.dry_run:
            logger.info("Dry run: not waiting for snapd")
            return state

        interval, timeout = self.config.polling("snapd")
        wait_until(lambda: env.service_active("snapd"), what="snapd service", interval=interval, timeout=timeout)
        return state
