"""
Shared fixtures: an in-memory host that understands the commands the steps issue.
"""

import os
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pytest

from coginstall.config import BootstrapConfig
from coginstall.errors import CommandError
from coginstall.lib.command import CmdResult
from coginstall.lib.env import Environment

HOME = "/home/dev"

ZSHRC_TEMPLATE = 'export ZSH="$HOME/.oh-my-zsh"\nZSH_THEME="robbyrussell"\nplugins=(git)\nsource $ZSH/oh-my-zsh.sh\n'

NVIDIA_LIST = "deb https://nvidia.github.io/libnvidia-container/stable/deb/$(ARCH) /\n"


class FakeHost(Environment):
    """Environment double backed by plain Python collections.

    Queries read the collections; mutations are recorded in ``mutations`` and
    applied the way the real tool would.
    """

    def __init__(self, *, user: str = "dev", home: str = HOME, dry_run: bool = False):
        self.user = user
        self.home = home
        self.dry_run = dry_run
        self._as_root = False
        self._switch_user = False

        self.commands: Set[str] = {"curl", "wget", "sudo", "dpkg", "getent"}
        self.packages: Set[str] = set()
        self.snaps: Set[str] = set()
        self.groups: Dict[str, Set[str]] = {}
        self.services: Set[str] = set()
        self.images: Set[str] = set()
        self.files: Dict[str, str] = {}
        self.dirs: Set[str] = set()
        self.upgradable: List[str] = ["libc6", "openssl"]
        # seconds since the last apt-get update; None means no lists cached
        self.apt_lists_age: Optional[float] = None
        self.sudo_primed = False
        self.release = {"ID": "ubuntu", "VERSION_ID": "22.04", "VERSION_CODENAME": "jammy"}
        # service -> number of negative probes before it reports active
        self.warmup: Dict[str, int] = {}

        self.mutations: List[Tuple] = []
        self._options: List[Tuple[List[str], Dict]] = []
        self._failures: List[Tuple[Tuple[str, ...], BaseException]] = []

    def fail_on(self, *prefix: str, exc: Optional[BaseException] = None) -> None:
        self._failures.append((tuple(prefix), exc or CommandError(list(prefix), 100, "boom", " ".join(prefix))))

    def commands_run(self) -> List[List[str]]:
        return [m[1] for m in self.mutations if m[0] == "run"]

    def run_options(self, *prefix: str) -> Dict:
        """Keyword arguments of the last command starting with ``prefix``."""
        matches = [o for argv, o in self._options if tuple(argv[: len(prefix)]) == prefix]
        assert matches, f"no command starting with {prefix}"
        return matches[-1]

    # -- queries -------------------------------------------------------

    def has_command(self, name: str) -> bool:
        return name in self.commands

    def exists(self, path: str) -> bool:
        if path in self.files or path in self.dirs:
            return True
        prefix = path.rstrip("/") + "/"
        return any(p.startswith(prefix) for p in [*self.files, *self.dirs])

    def read_text(self, path: str) -> Optional[str]:
        return self.files.get(path)

    def package_installed(self, package: str) -> bool:
        return package in self.packages

    def snap_installed(self, name: str) -> bool:
        return name in self.snaps

    def group_exists(self, group: str) -> bool:
        return group in self.groups

    def user_in_group(self, user: str, group: str) -> bool:
        return user in self.groups.get(group, set())

    def service_active(self, name: str) -> bool:
        if name not in self.services:
            return False
        if self.warmup.get(name, 0) > 0:
            self.warmup[name] -= 1
            return False
        return True

    def docker_ready(self) -> bool:
        return "docker" in self.commands and self.service_active("docker")

    def image_present(self, image: str) -> bool:
        return image in self.images

    def upgradable_packages(self) -> List[str]:
        return list(self.upgradable)

    def apt_index_age(self) -> Optional[float]:
        return self.apt_lists_age

    def architecture(self) -> str:
        return "amd64"

    def os_release(self) -> Dict[str, str]:
        return dict(self.release)

    def fetch_text(self, url: str) -> str:
        if url.endswith(".list"):
            return NVIDIA_LIST
        return "-----BEGIN PGP PUBLIC KEY BLOCK-----\n"

    # -- mutations -----------------------------------------------------

    def run(
        self,
        argv: Sequence[str],
        *,
        sudo: bool = False,
        as_user: bool = False,
        env=None,
        cwd=None,
        input_text=None,
        quiet: bool = False,
    ) -> CmdResult:
        argv = list(argv)
        self.mutations.append(("run", argv))
        self._options.append((argv, {"sudo": sudo, "as_user": as_user, "env": dict(env or {}), "quiet": quiet}))
        for prefix, exc in self._failures:
            if tuple(argv[: len(prefix)]) == prefix:
                raise exc
        if not self.dry_run:
            self._apply(argv, input_text=input_text)
        return CmdResult(argv=argv, returncode=0, stdout="", stderr="")

    def _install_package(self, pkg: str) -> None:
        self.packages.add(pkg)
        if pkg == "snapd":
            self.commands.add("snap")
            self.services.add("snapd")
        elif pkg == "docker-ce":
            self.commands.add("docker")
            self.services.add("docker")
        elif pkg == "nvidia-container-toolkit":
            self.commands.add("nvidia-ctk")
        elif pkg == "zsh":
            self.commands.add("zsh")
        elif pkg.startswith("cuda-toolkit-"):
            version = pkg[len("cuda-toolkit-"):].replace("-", ".")
            self.files[f"/usr/local/cuda-{version}/bin/nvcc"] = ""

    def ensure_sudo(self) -> None:
        self.sudo_primed = True

    def hand_over(self, path: str) -> None:
        pass

    def _apply(self, argv: List[str], *, input_text: Optional[str]) -> None:
        cmd = argv[0]
        if argv[:2] == ["apt-get", "update"]:
            self.apt_lists_age = 0.0
        elif argv[:2] == ["apt-get", "upgrade"]:
            self.upgradable = []
        elif argv[:2] == ["apt-get", "install"]:
            for pkg in argv[3:]:
                self._install_package(pkg)
        elif argv[:2] == ["snap", "install"]:
            self.snaps.add(argv[2])
        elif cmd == "groupadd":
            self.groups.setdefault(argv[1], set())
        elif cmd == "usermod":
            self.groups.setdefault(argv[2], set()).add(argv[3])
        elif cmd == "bash" and "-p" in argv:
            prefix = argv[argv.index("-p") + 1]
            self.dirs.add(prefix)
            self.files[f"{prefix}/bin/conda"] = ""
        elif cmd == "mv":
            self.files[argv[2]] = self.files.pop(argv[1], "")
        elif cmd == "gpg":
            self.files[argv[argv.index("-o") + 1]] = "keyring"
        elif cmd == "tee":
            self.files[argv[1]] = input_text or ""
        elif cmd == "install" and "-d" in argv:
            self.dirs.add(argv[-1])
        elif argv[:3] == ["nvidia-ctk", "runtime", "configure"]:
            self.files["/etc/docker/daemon.json"] = '{"runtimes": {"nvidia": {"path": "nvidia-container-runtime"}}}'
        elif argv[:2] == ["systemctl", "restart"]:
            self.services.add(argv[2])
        elif argv[:2] == ["docker", "pull"]:
            self.images.add(argv[2])
        elif cmd == "sh" and "--unattended" in argv:
            self.dirs.add(os.path.join(self.home, ".oh-my-zsh"))
            self.files.setdefault(os.path.join(self.home, ".zshrc"), ZSHRC_TEMPLATE)
        elif argv[:2] == ["git", "clone"]:
            self.dirs.add(argv[-1])

    def download(self, url: str, dest: str) -> None:
        self.mutations.append(("download", url, dest))
        if not self.dry_run:
            self.files[dest] = f"contents of {url}"

    def write_file(self, path: str, content: str, *, sudo: bool = False) -> None:
        if sudo:
            self.run(["tee", path], sudo=True, input_text=content)
            return
        self.mutations.append(("write", path))
        if not self.dry_run:
            self.files[path] = content

    def append_line(self, path: str, line: str) -> None:
        self.mutations.append(("append", path, line))
        if not self.dry_run:
            self.files[path] = self.files.get(path, "") + line + "\n"

    def remove(self, path: str, *, sudo: bool = False) -> None:
        self.mutations.append(("remove", path))
        if not self.dry_run:
            self.files.pop(path, None)

    def make_dirs(self, path: str, *, sudo: bool = False, mode: str = "0755") -> None:
        if sudo:
            self.run(["install", "-m", mode, "-d", path], sudo=True)
            return
        self.mutations.append(("mkdir", path))
        if not self.dry_run:
            self.dirs.add(path)


@pytest.fixture
def host() -> FakeHost:
    """A bare Ubuntu host with only the prerequisite tools."""
    return FakeHost()


@pytest.fixture
def config() -> BootstrapConfig:
    """Default configuration with instant polling."""
    return BootstrapConfig(
        raw={
            "polling": {
                "snapd": {"interval": 0.01, "timeout": 1},
                "docker": {"interval": 0.01, "timeout": 1},
            }
        },
        home=HOME,
    )


@pytest.fixture
def zsh_config() -> BootstrapConfig:
    """Configuration with the shell framework enabled."""
    return BootstrapConfig(
        raw={
            "shell_framework": {"enabled": True},
            "polling": {"docker": {"interval": 0.01, "timeout": 1}},
        },
        home=HOME,
    )
