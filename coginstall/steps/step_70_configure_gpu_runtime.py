from __future__ import annotations

import json
import logging
from typing import Any, Dict

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.pkg import apt_install, apt_update, install_keyring, write_apt_source
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)

TOOLKIT_PACKAGE = "nvidia-container-toolkit"
KEYRING_PATH = "/usr/share/keyrings/nvidia-container-toolkit-keyring.gpg"
SOURCE_LIST = "/etc/apt/sources.list.d/nvidia-container-toolkit.list"
DAEMON_JSON = "/etc/docker/daemon.json"


def docker_has_nvidia_runtime(env: Environment) -> bool:
    text = env.read_text(DAEMON_JSON)
    if not text:
        return False
    try:
        data = json.loads(text)
    except ValueError:
        logger.warning("%s is not valid JSON", DAEMON_JSON)
        return False
    return "nvidia" in ((data or {}).get("runtimes") or {})


def signed_source_lines(listing: str, keyring: str) -> list[str]:
    return [
        line.replace("deb https://", f"deb [signed-by={keyring}] https://")
        for line in listing.splitlines()
        if line.strip()
    ]


class ConfigureGpuRuntimeStep(BaseStep):
    step_id = "70_configure_gpu_runtime"
    description = "Install the NVIDIA container toolkit and enable it in Docker"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def check(self, env: Environment) -> bool:
        return env.package_installed(TOOLKIT_PACKAGE) and docker_has_nvidia_runtime(env)

    def _install_toolkit(self, env: Environment) -> None:
        base = self.config.nvidia_container_url
        install_keyring(env, key_url=f"{base}/gpgkey", keyring_path=KEYRING_PATH)

        rel = env.os_release()
        distribution = f"{rel.get('ID', '')}{rel.get('VERSION_ID', '')}"
        listing = env.fetch_text(f"{base}/{distribution}/libnvidia-container.list")
        write_apt_source(env, SOURCE_LIST, signed_source_lines(listing, KEYRING_PATH))

        apt_update(env)
        apt_install(env, [TOOLKIT_PACKAGE])

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        if not env.package_installed(TOOLKIT_PACKAGE):
            self._install_toolkit(env)

        env.run(["nvidia-ctk", "runtime", "configure", "--runtime=docker"], sudo=True)
        env.run(["systemctl", "restart", "docker"], sudo=True)
        return state
