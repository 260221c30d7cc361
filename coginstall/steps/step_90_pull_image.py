from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.spinner import Spinner
from ..pipeline import BaseStep
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class PullImageStep(BaseStep):
    step_id = "90_pull_image"
    description = "Pull the GPU development container image"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def check(self, env: Environment) -> bool:
        return env.image_present(self.config.image)

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        image = self.config.image
        # The spinner owns stderr while it runs: prompt and log first.
        env.ensure_sudo()
        logger.info("Pulling %s (this can take a while)", image)
        with Spinner(f"Pulling {image}"):
            env.run(["docker", "pull", image], sudo=True, quiet=True)
        record_decision(state, "image", image)
        logger.info("Pulled %s", image)
        return state
