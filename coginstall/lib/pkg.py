from __future__ import annotations

import logging
from typing import List, Sequence

from .env import Environment

logger = logging.getLogger(__name__)


def apt_update(env: Environment) -> None:
    env.run(["apt-get", "update"], sudo=True)


def apt_upgrade(env: Environment) -> None:
    env.run(["apt-get", "upgrade", "-y"], sudo=True)


def apt_install(env: Environment, packages: Sequence[str]) -> None:
    if not packages:
        return
    env.run(["apt-get", "install", "-y", *packages], sudo=True)


def missing_packages(env: Environment, packages: Sequence[str]) -> List[str]:
    return [p for p in packages if not env.package_installed(p)]


def snap_install(env: Environment, name: str, *, classic: bool = False) -> None:
    argv = ["snap", "install", name]
    if classic:
        argv.append("--classic")
    env.run(argv, sudo=True)


def install_keyring(env: Environment, *, key_url: str, keyring_path: str) -> None:
    """Fetch an ASCII-armored signing key and store it dearmored for apt."""

    armored = env.fetch_text(key_url)
    env.run(["gpg", "--batch", "--yes", "--dearmor", "-o", keyring_path], sudo=True, input_text=armored)
    logger.info("Installed signing key %s -> %s", key_url, keyring_path)


def write_apt_source(env: Environment, list_path: str, lines: Sequence[str]) -> None:
    env.write_file(list_path, "".join(f"{line}\n" for line in lines), sudo=True)
    logger.info("Configured apt source: %s", list_path)
