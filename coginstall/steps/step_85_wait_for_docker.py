from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.poll import wait_until
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)


class WaitForDockerStep(BaseStep):
    step_id = "85_wait_for_docker"
    description = "Wait for the Docker daemon to report ready"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def check(self, env: Environment) -> bool:
        return env.docker_ready()

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        if env.dry_run:
            logger.info("Dry run: not waiting for docker")
            return state
        interval, timeout = self.config.polling("docker")
        wait_until(env.docker_ready, what="docker daemon", interval=interval, timeout=timeout)
        return state
