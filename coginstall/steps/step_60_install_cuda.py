from __future__ import annotations

import logging
import os
import posixpath
from typing import Any, Dict

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.pkg import apt_install, apt_update
from ..lib.profile import all_present, ensure_lines
from ..pipeline import BaseStep
from ..state_store import record_decision

logger = logging.getLogger(__name__)

PIN_DEST = "/etc/apt/preferences.d/cuda-repository-pin-600"


def pin_path(config: BootstrapConfig) -> str:
    return os.path.join(config.work_dir, posixpath.basename(config.cuda_pin_url))


def repo_deb_path(config: BootstrapConfig) -> str:
    return os.path.join(config.work_dir, posixpath.basename(config.cuda_repo_deb_url))


def local_repo_dir(config: BootstrapConfig) -> str:
    # cuda-repo-ubuntu2204-12-3-local_12.3.0-..._amd64.deb unpacks to /var/cuda-repo-ubuntu2204-12-3-local
    name = posixpath.basename(config.cuda_repo_deb_url).split("_", 1)[0]
    return f"/var/{name}"


class InstallCudaStep(BaseStep):
    step_id = "60_install_cuda"
    description = "Install the CUDA toolkit from NVIDIA's local repository package"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    @property
    def nvcc(self) -> str:
        return f"{self.config.cuda_home}/bin/nvcc"

    @property
    def path_line(self) -> str:
        return f"export PATH=$PATH:{self.config.cuda_home}/bin"

    def check(self, env: Environment) -> bool:
        return env.exists(self.nvcc) and all_present(env, self.config.profile_files, [self.path_line])

    def _install_toolkit(self, env: Environment) -> None:
        pin = pin_path(self.config)
        env.download(self.config.cuda_pin_url, pin)
        env.run(["mv", pin, PIN_DEST], sudo=True)

        deb = repo_deb_path(self.config)
        env.download(self.config.cuda_repo_deb_url, deb)
        env.run(["dpkg", "-i", deb], sudo=True)
        env.run(["bash", "-c", f"cp {local_repo_dir(self.config)}/cuda-*-keyring.gpg /usr/share/keyrings/"], sudo=True)

        apt_update(env)
        apt_install(env, [self.config.cuda_toolkit_package])

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        if env.exists(self.nvcc):
            logger.info("CUDA toolkit already present at %s", self.config.cuda_home)
        else:
            self._install_toolkit(env)
            record_decision(state, "cuda_version", self.config.cuda_version)

        ensure_lines(env, self.config.profile_files, [self.path_line])
        return state
