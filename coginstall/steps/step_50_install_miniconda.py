from __future__ import annotations

import logging
import os
import posixpath
from typing import Any, Dict, List

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.profile import all_present, ensure_lines
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)


def installer_path(config: BootstrapConfig) -> str:
    return os.path.join(config.work_dir, posixpath.basename(config.miniconda_url))


class InstallMinicondaStep(BaseStep):
    step_id = "50_install_miniconda"
    description = "Install Miniconda and activate it in shell profiles"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    @property
    def profile_lines(self) -> List[str]:
        return [f'export PATH="{self.config.conda_prefix}/bin:$PATH"', "conda activate base"]

    def check(self, env: Environment) -> bool:
        return env.exists(self.config.conda_prefix) and all_present(
            env, self.config.profile_files, self.profile_lines
        )

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        prefix = self.config.conda_prefix

        if env.exists(prefix):
            logger.info("Miniconda is already installed at %s", prefix)
        else:
            installer = installer_path(self.config)
            env.download(self.config.miniconda_url, installer)
            # -b: batch mode, no prompts or profile edits of its own
            env.run(["bash", installer, "-b", "-p", prefix], as_user=True)

        ensure_lines(env, self.config.profile_files, self.profile_lines)
        return state
