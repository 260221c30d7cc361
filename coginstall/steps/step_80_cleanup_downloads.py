from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..pipeline import BaseStep
from .step_50_install_miniconda import installer_path
from .step_60_install_cuda import pin_path, repo_deb_path

logger = logging.getLogger(__name__)


class CleanupDownloadsStep(BaseStep):
    step_id = "80_cleanup_downloads"
    description = "Remove transient installer downloads"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def artifacts(self) -> List[str]:
        return [installer_path(self.config), pin_path(self.config), repo_deb_path(self.config)]

    def _leftovers(self, env: Environment) -> List[str]:
        return [p for p in self.artifacts() if env.exists(p)]

    def check(self, env: Environment) -> bool:
        return not self._leftovers(env)

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        for p in self._leftovers(env):
            env.remove(p)
            logger.info("Removed %s", p)
        return state
