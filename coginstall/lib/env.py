from __future__ import annotations

import getpass
import logging
import os
import pwd
import shutil
import time
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

APT_LISTS_DIR = "/var/lib/apt/lists"


class Environment:
    """Handle on the host being provisioned.

    Steps observe and mutate the machine only through this object, so a run
    can be exercised against an in-memory host in tests.

    Query methods never change anything and always execute, even in dry-run.
    Mutating methods honour ``dry_run``: they log what they would do.
    """

    def __init__(
        self,
        *,
        user: Optional[str] = None,
        home: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        self.user = user or os.environ.get("SUDO_USER") or os.environ.get("USER") or getpass.getuser()
        self.home = home or os.path.expanduser(f"~{self.user}")
        self.dry_run = dry_run
        self._as_root = hasattr(os, "geteuid") and os.geteuid() == 0
        # running as root on behalf of a regular user (sudo coginstall)
        self._switch_user = self._as_root and self.user != "root"

    # -- queries -------------------------------------------------------

    def _probe(self, argv: Sequence[str], *, sudo: bool = False) -> CmdResult:
        return run_cmd(self._argv(argv, sudo=sudo), check=False, quiet=True)

    def has_command(self, name: str) -> bool:
        return shutil.which(name) is not None

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def read_text(self, path: str) -> Optional[str]:
        try:
            return Path(path).read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError):
            return None

    def package_installed(self, package: str) -> bool:
        r = self._probe(["dpkg-query", "-W", "-f=${Status}", package])
        return r.ok and r.stdout.strip() == "install ok installed"

    def snap_installed(self, name: str) -> bool:
        return self.has_command("snap") and self._probe(["snap", "list", name]).ok

    def group_exists(self, group: str) -> bool:
        return self._probe(["getent", "group", group]).ok

    def user_in_group(self, user: str, group: str) -> bool:
        r = self._probe(["id", "-nG", user])
        return r.ok and group in r.stdout.split()

    def service_active(self, name: str) -> bool:
        return self._probe(["systemctl", "is-active", "--quiet", name]).ok

    def docker_ready(self) -> bool:
        return self.has_command("docker") and self._probe(["docker", "info"], sudo=True).ok

    def image_present(self, image: str) -> bool:
        return self.has_command("docker") and self._probe(["docker", "image", "inspect", image], sudo=True).ok

    def upgradable_packages(self) -> List[str]:
        r = self._probe(["apt", "list", "--upgradable"])
        if not r.ok:
            return []
        out: List[str] = []
        for line in r.stdout.splitlines():
            # "name/suite version arch [upgradable from: ...]"
            if "/" in line and "upgradable" in line:
                out.append(line.split("/", 1)[0])
        return out

    def apt_index_age(self) -> Optional[float]:
        """Seconds since the apt package lists were last refreshed.

        None when there are no lists at all (a fresh image).
        """
        try:
            mtimes = [
                p.stat().st_mtime
                for p in Path(APT_LISTS_DIR).iterdir()
                if p.is_file() and p.name != "lock"
            ]
        except OSError:
            return None
        if not mtimes:
            return None
        return max(0.0, time.time() - max(mtimes))

    def architecture(self) -> str:
        return run_cmd(["dpkg", "--print-architecture"], quiet=True).stdout.strip()

    def os_release(self) -> Dict[str, str]:
        data: Dict[str, str] = {}
        for line in (self.read_text("/etc/os-release") or "").splitlines():
            if "=" not in line or line.startswith("#"):
                continue
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip().strip('"')
        return data

    def fetch_text(self, url: str) -> str:
        return run_cmd(["curl", "-fsSL", url], quiet=True).stdout

    # -- mutations -----------------------------------------------------

    def _argv(
        self,
        argv: Sequence[str],
        *,
        sudo: bool = False,
        as_user: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> List[str]:
        if as_user and self._switch_user:
            # sudo resets the environment, so variables travel through env(1)
            assigns = [f"{k}={v}" for k, v in (env or {}).items()]
            prefix = ["sudo", "-u", self.user, "-H"]
            return [*prefix, "env", *assigns, *argv] if assigns else [*prefix, *argv]
        if sudo and not self._as_root:
            return ["sudo", *argv]
        return list(argv)

    def run(
        self,
        argv: Sequence[str],
        *,
        sudo: bool = False,
        as_user: bool = False,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        input_text: str | None = None,
        quiet: bool = False,
    ) -> CmdResult:
        """Run a mutating command.

        ``sudo`` escalates when not already root. ``as_user`` drops back to
        the provisioned user when running as root, for anything that writes
        into their home.
        """
        return run_cmd(
            self._argv(argv, sudo=sudo, as_user=as_user, env=env),
            env=env,
            cwd=cwd,
            input_text=input_text,
            dry_run=self.dry_run,
            quiet=quiet,
        )

    def ensure_sudo(self) -> None:
        """Ask for the sudo password up front, while nothing else owns the terminal."""
        if self._as_root or self.dry_run:
            return
        run_cmd(["sudo", "-v"])

    def hand_over(self, path: str) -> None:
        """Give root-created files under the user's home back to the user."""
        if not self._switch_user or self.dry_run:
            return
        home = Path(self.home)
        p = Path(path)
        if home not in p.parents:
            return
        pw = pwd.getpwnam(self.user)
        while p != home:
            if p.exists() and p.stat().st_uid != pw.pw_uid:
                os.chown(p, pw.pw_uid, pw.pw_gid)
            p = p.parent

    def download(self, url: str, dest: str) -> None:
        self.run(["curl", "-fsSL", "--create-dirs", "-o", dest, url], as_user=True)

    def write_file(self, path: str, content: str, *, sudo: bool = False) -> None:
        if sudo:
            # Files under /etc are written the same way an operator would: sudo tee.
            run_cmd(self._argv(["tee", path], sudo=True), input_text=content, dry_run=self.dry_run)
            return
        if self.dry_run:
            logger.info("Would write %s", path)
            return
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        self.hand_over(path)

    def append_line(self, path: str, line: str) -> None:
        if self.dry_run:
            logger.info("Would append to %s: %s", path, line)
            return
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        existing = p.read_text(encoding="utf-8") if p.exists() else ""
        prefix = "" if not existing or existing.endswith("\n") else "\n"
        with p.open("a", encoding="utf-8") as f:
            f.write(f"{prefix}{line}\n")
        self.hand_over(path)

    def remove(self, path: str, *, sudo: bool = False) -> None:
        if sudo:
            run_cmd(self._argv(["rm", "-f", path], sudo=True), dry_run=self.dry_run)
            return
        if self.dry_run:
            logger.info("Would remove %s", path)
            return
        Path(path).unlink(missing_ok=True)

    def make_dirs(self, path: str, *, sudo: bool = False, mode: str = "0755") -> None:
        if sudo:
            run_cmd(self._argv(["install", "-m", mode, "-d", path], sudo=True), dry_run=self.dry_run)
            return
        if self.dry_run:
            logger.info("Would create directory %s", path)
            return
        Path(path).mkdir(parents=True, exist_ok=True, mode=int(mode, 8))
        self.hand_over(path)
