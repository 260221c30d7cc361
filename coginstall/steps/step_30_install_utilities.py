from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..config import BootstrapConfig
from ..lib.env import Environment
from ..lib.manifests import load_catalog
from ..lib.pkg import apt_install, missing_packages, snap_install
from ..pipeline import BaseStep
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class InstallUtilitiesStep(BaseStep):
    step_id = "30_install_utilities"
    description = "Install the CLI utilities catalog"

    def __init__(self, config: BootstrapConfig, catalog: Optional[Dict[str, List[str]]] = None) -> None:
        self.catalog = catalog if catalog is not None else load_catalog(config.catalog_path)

    def _missing_snaps(self, env: Environment) -> List[str]:
        return [s for s in self.catalog.get("snap", []) if not env.snap_installed(s)]

    def check(self, env: Environment) -> bool:
        return not missing_packages(env, self.catalog.get("apt", [])) and not self._missing_snaps(env)

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        apt_missing = missing_packages(env, self.catalog.get("apt", []))
        snap_missing = self._missing_snaps(env)

        apt_install(env, apt_missing)
        for name in snap_missing:
            snap_install(env, name)

        record_decision(state, "utilities_installed", {"apt": apt_missing, "snap": snap_missing})
        logger.info("Utilities installed (apt=%d snap=%d)", len(apt_missing), len(snap_missing))
        return state
