from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..errors import PrerequisiteError
from ..lib.env import Environment
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)

# downloader, privilege runner, package query, group lookup
REQUIRED_TOOLS = ("curl", "wget", "sudo", "dpkg", "getent")


class CheckPrerequisitesStep(BaseStep):
    step_id = "10_check_prerequisites"
    description = "Verify required host tools"

    def __init__(self, tools=REQUIRED_TOOLS) -> None:
        self.tools = tuple(tools)

    def missing(self, env: Environment) -> List[str]:
        return [t for t in self.tools if not env.has_command(t)]

    def check(self, env: Environment) -> bool:
        return not self.missing(env)

    def run(self, env: Environment, state: Dict[str, Any]) -> Dict[str, Any]:
        missing = self.missing(env)
        if missing:
            raise PrerequisiteError(missing)
        return state
