from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.pkg import apt_update, apt_upgrade
from ..pipeline import BaseStep
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class UpdateSystemStep(BaseStep):
    step_id = "20_update_system"
    description = "Update package indices and upgrade installed packages"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def indices_fresh(self, env: Environment) -> bool:
        age = env.apt_index_age()
        if age is None:
            logger.info("No apt package lists cached yet")
            return False
        if age > self.config.apt_index_max_age:
            logger.info("apt package lists are %.0f seconds old", age)
            return False
        return True

    def check(self, env: Environment) -> bool:
        # "nothing upgradable" only means something against fresh lists
        return self.indices_fresh(env) and not env.upgradable_packages()

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        apt_update(env)
        pending = env.upgradable_packages()
        record_decision(state, "upgraded_packages", pending)
        if pending:
            apt_upgrade(env)
        return state

    def verify(self, env: Environment) -> bool:
        # Held-back packages may legitimately remain upgradable.
        return True
