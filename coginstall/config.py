from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .logging_utils import default_log_path

DEFAULT_IMAGE = "nvcr.io/nvidia/pytorch:23.05-py3"
DEFAULT_CUDA_VERSION = "12.3"
DEFAULT_CUDA_REPO_DEB_URL = (
    "https://developer.download.nvidia.com/compute/cuda/12.3.0/local_installers/"
    "cuda-repo-ubuntu2204-12-3-local_12.3.0-545.23.06-1_amd64.deb"
)
DEFAULT_CUDA_PIN_URL = (
    "https://developer.download.nvidia.com/compute/cuda/repos/ubuntu2204/x86_64/cuda-ubuntu2204.pin"
)
DEFAULT_MINICONDA_URL = "https://repo.anaconda.com/miniconda/Miniconda3-latest-Linux-x86_64.sh"
DEFAULT_DOCKER_REPO_URL = "https://download.docker.com/linux/ubuntu"
DEFAULT_NVIDIA_CONTAINER_URL = "https://nvidia.github.io/libnvidia-container"
DEFAULT_OH_MY_ZSH_INSTALLER_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
DEFAULT_SHELL_PLUGINS = {
    "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions",
    "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting",
}

DEFAULT_STATE_PATH = "~/.local/state/coginstall/state.json"
DEFAULT_APT_INDEX_MAX_AGE = 24 * 3600

# service -> (interval seconds, timeout seconds)
DEFAULT_POLLING = {
    "snapd": (2.0, 300.0),
    "docker": (10.0, 600.0),
}


@dataclass(frozen=True)
class BootstrapConfig:
    raw: Dict[str, Any] = field(default_factory=dict)
    home: str = field(default_factory=lambda: str(Path.home()))

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    def _home_path(self, value: str) -> str:
        if value.startswith("~/"):
            return os.path.join(self.home, value[2:])
        return value

    @property
    def work_dir(self) -> str:
        return self._home_path(str(self.raw.get("work_dir") or "~/.cache/coginstall/downloads"))

    @property
    def state_path(self) -> str:
        return self._home_path(str(self.raw.get("state_path") or DEFAULT_STATE_PATH))

    @property
    def log_path(self) -> str:
        p = self.raw.get("log_path")
        return self._home_path(str(p)) if p else default_log_path(self.home)

    @property
    def apt_index_max_age(self) -> float:
        """Seconds after which cached apt package lists count as stale."""
        return float(self._section("apt").get("index_max_age", DEFAULT_APT_INDEX_MAX_AGE))

    @property
    def catalog_path(self) -> Optional[str]:
        p = self.raw.get("catalog")
        return self._home_path(str(p)) if p else None

    @property
    def image(self) -> str:
        return str(self._section("docker").get("image") or DEFAULT_IMAGE)

    @property
    def docker_repo_url(self) -> str:
        return str(self._section("docker").get("repo_url") or DEFAULT_DOCKER_REPO_URL)

    @property
    def docker_group(self) -> str:
        return str(self._section("docker").get("group") or "docker")

    @property
    def conda_prefix(self) -> str:
        return self._home_path(str(self._section("miniconda").get("prefix") or "~/anaconda3"))

    @property
    def miniconda_url(self) -> str:
        return str(self._section("miniconda").get("installer_url") or DEFAULT_MINICONDA_URL)

    @property
    def cuda_version(self) -> str:
        return str(self._section("cuda").get("version") or DEFAULT_CUDA_VERSION)

    @property
    def cuda_home(self) -> str:
        return str(self._section("cuda").get("home") or f"/usr/local/cuda-{self.cuda_version}")

    @property
    def cuda_toolkit_package(self) -> str:
        return str(
            self._section("cuda").get("toolkit_package") or f"cuda-toolkit-{self.cuda_version.replace('.', '-')}"
        )

    @property
    def cuda_repo_deb_url(self) -> str:
        return str(self._section("cuda").get("repo_deb_url") or DEFAULT_CUDA_REPO_DEB_URL)

    @property
    def cuda_pin_url(self) -> str:
        return str(self._section("cuda").get("pin_url") or DEFAULT_CUDA_PIN_URL)

    @property
    def nvidia_container_url(self) -> str:
        return str(self._section("gpu_runtime").get("repo_url") or DEFAULT_NVIDIA_CONTAINER_URL)

    @property
    def shell_framework(self) -> bool:
        return bool(self._section("shell_framework").get("enabled", False))

    @property
    def oh_my_zsh_installer_url(self) -> str:
        return str(self._section("shell_framework").get("installer_url") or DEFAULT_OH_MY_ZSH_INSTALLER_URL)

    @property
    def shell_plugins(self) -> Dict[str, str]:
        plugins = self._section("shell_framework").get("plugins")
        if plugins is None:
            return dict(DEFAULT_SHELL_PLUGINS)
        if not isinstance(plugins, dict):
            raise ValueError("shell_framework.plugins must be a mapping of name -> git url")
        return {str(k): str(v) for k, v in plugins.items()}

    @property
    def profile_files(self) -> List[str]:
        configured = self.raw.get("profile_files")
        if configured:
            return [self._home_path(str(p)) for p in configured]
        files = ["~/.bashrc"]
        if self.shell_framework:
            files.append("~/.zshrc")
        return [self._home_path(p) for p in files]

    def polling(self, service: str) -> tuple[float, float]:
        """Return (interval, timeout) seconds for a polled service."""
        default_interval, default_timeout = DEFAULT_POLLING.get(service, (5.0, 300.0))
        entry = (self.raw.get("polling") or {}).get(service) or {}
        return (
            float(entry.get("interval", default_interval)),
            float(entry.get("timeout", default_timeout)),
        )


def load_config(path: Optional[str], *, home: Optional[str] = None) -> BootstrapConfig:
    """Load a YAML config; a missing or unset path yields defaults."""

    kwargs: Dict[str, Any] = {"home": home} if home else {}
    if not path:
        return BootstrapConfig(**kwargs)

    p = Path(path)
    if not p.exists():
        return BootstrapConfig(**kwargs)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("coginstall config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")

    return BootstrapConfig(raw=raw, **kwargs)


def default_config_path(home: str) -> str:
    return os.path.join(home, ".config", "coginstall", "config.yaml")
