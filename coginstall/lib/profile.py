from __future__ import annotations

import logging
from typing import Iterable, List

from .env import Environment

logger = logging.getLogger(__name__)


def has_line(env: Environment, path: str, line: str) -> bool:
    text = env.read_text(path)
    if text is None:
        return False
    return line.strip() in (l.strip() for l in text.splitlines())


def ensure_lines(env: Environment, paths: Iterable[str], lines: Iterable[str]) -> List[str]:
    """Append each line to each shell profile unless already present.

    Returns the "path: line" pairs actually appended.
    """

    lines = list(lines)
    added: List[str] = []
    for path in paths:
        for line in lines:
            if has_line(env, path, line):
                continue
            env.append_line(path, line)
            added.append(f"{path}: {line}")
            logger.info("Appended to %s: %s", path, line)
    return added


def all_present(env: Environment, paths: Iterable[str], lines: Iterable[str]) -> bool:
    lines = list(lines)
    return all(has_line(env, p, l) for p in paths for l in lines)
