from __future__ import annotations

import logging
import os
import posixpath
from typing import Any, Dict, List

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.pkg import apt_install
from ..lib.profile import has_line
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)

SOURCE_LINE = "source $ZSH/oh-my-zsh.sh"


class InstallShellFrameworkStep(BaseStep):
    """Oh My Zsh plus plugins. Opt-in through ``shell_framework.enabled``."""

    step_id = "95_install_shell_framework"
    description = "Install Oh My Zsh and its plugins"

    def __init__(self, config: BootstrapConfig) -> None:
        self.config = config

    def omz_dir(self, env: Environment) -> str:
        return os.path.join(env.home, ".oh-my-zsh")

    def zshrc(self, env: Environment) -> str:
        return os.path.join(env.home, ".zshrc")

    def plugin_dir(self, env: Environment, name: str) -> str:
        return os.path.join(self.omz_dir(env), "custom", "plugins", name)

    @property
    def plugins_line(self) -> str:
        return f"plugins=({' '.join(['git', *self.config.shell_plugins])})"

    def check(self, env: Environment) -> bool:
        if not self.config.shell_framework:
            logger.debug("Shell framework disabled")
            return True
        return (
            env.exists(self.omz_dir(env))
            and all(env.exists(self.plugin_dir(env, n)) for n in self.config.shell_plugins)
            and has_line(env, self.zshrc(env), self.plugins_line)
            and has_line(env, self.zshrc(env), SOURCE_LINE)
        )

    def _run_installer(self, env: Environment) -> None:
        installer = os.path.join(self.config.work_dir, posixpath.basename(self.config.oh_my_zsh_installer_url))
        env.download(self.config.oh_my_zsh_installer_url, installer)
        try:
            env.run(
                ["sh", installer, "--unattended"],
                as_user=True,
                env={
                    "HOME": env.home,
                    "ZSH": self.omz_dir(env),
                    "RUNZSH": "no",
                    "CHSH": "no",
                    "KEEP_ZSHRC": "yes",
                },
            )
        finally:
            env.remove(installer)

    def _write_plugins(self, env: Environment) -> None:
        path = self.zshrc(env)
        lines: List[str] = (env.read_text(path) or "").splitlines()

        replaced = False
        for i, line in enumerate(lines):
            if line.strip().startswith("plugins=("):
                lines[i] = self.plugins_line
                replaced = True
        if not replaced:
            # plugins must be declared before oh-my-zsh.sh is sourced
            idx = next((i for i, l in enumerate(lines) if l.strip() == SOURCE_LINE), len(lines))
            lines.insert(idx, self.plugins_line)
        if SOURCE_LINE not in (l.strip() for l in lines):
            lines.insert(0, 'export ZSH="$HOME/.oh-my-zsh"')
            lines.append(SOURCE_LINE)

        env.write_file(path, "\n".join(lines) + "\n")

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        if not env.has_command("zsh"):
            apt_install(env, ["zsh"])

        if not env.exists(self.omz_dir(env)):
            self._run_installer(env)

        for name, url in self.config.shell_plugins.items():
            dest = self.plugin_dir(env, name)
            if not env.exists(dest):
                env.run(["git", "clone", "--depth", "1", url, dest], as_user=True)

        if not (has_line(env, self.zshrc(env), self.plugins_line) and has_line(env, self.zshrc(env), SOURCE_LINE)):
            self._write_plugins(env)
        return state
