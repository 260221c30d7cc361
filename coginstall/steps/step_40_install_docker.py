from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.pkg import apt_install, apt_update, install_keyring, write_apt_source
from ..pipeline import BaseStep
from ..state_store import record_decision

logger = logging.getLogger(__name__)

KEYRING_DIR = "/etc/apt/keyrings"
KEYRING_PATH = f"{KEYRING_DIR}/docker.gpg"
SOURCE_LIST = "/etc/apt/sources.list.d/docker.list"
DOCKER_PACKAGES = ["docker-ce", "docker-ce-cli", "containerd.io"]


class InstallDockerStep(BaseStep):
    step_id = "40_install_docker"
    description = "Install Docker and grant the invoking user access"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def check(self, env: Environment) -> bool:
        return env.has_command("docker") and env.user_in_group(env.user, self.config.docker_group)

    def _install_engine(self, env: Environment) -> None:
        env.make_dirs(KEYRING_DIR, sudo=True)
        install_keyring(env, key_url=f"{self.config.docker_repo_url}/gpg", keyring_path=KEYRING_PATH)

        arch = env.architecture()
        codename = env.os_release().get("VERSION_CODENAME")
        if not codename:
            raise RuntimeError("VERSION_CODENAME missing from /etc/os-release")

        write_apt_source(
            env,
            SOURCE_LIST,
            [f"deb [arch={arch} signed-by={KEYRING_PATH}] {self.config.docker_repo_url} {codename} stable"],
        )
        apt_update(env)
        apt_install(env, DOCKER_PACKAGES)

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        group = self.config.docker_group

        if env.has_command("docker"):
            logger.info("Docker is already installed, skipping engine installation")
        else:
            self._install_engine(env)

        if not env.group_exists(group):
            env.run(["groupadd", group], sudo=True)

        if not env.user_in_group(env.user, group):
            env.run(["usermod", "-aG", group, env.user], sudo=True)
            record_decision(state, "relogin_required", True)
            logger.warning("Added %s to group %s; re-login for it to take effect", env.user, group)

        return state
