from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml


def _manifests_dir() -> Path:
    # coginstall/lib/manifests.py -> coginstall/manifests
    return Path(__file__).resolve().parents[1] / "manifests"


def load_yaml_rel(rel_path: str) -> Dict[str, Any]:
    """Load a YAML manifest shipped inside the package."""

    p = _manifests_dir() / rel_path.lstrip("/")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


def load_catalog(path: str | None = None) -> Dict[str, List[str]]:
    """Return the utilities catalog as ``{"apt": [...], "snap": [...]}``.

    ``path`` overrides the bundled catalog.yaml.
    """

    if path:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Manifest must be a mapping/dict: {path}")
    else:
        data = load_yaml_rel("catalog.yaml")

    out: Dict[str, List[str]] = {}
    for kind in ("apt", "snap"):
        entries = data.get(kind) or []
        if not isinstance(entries, list):
            raise ValueError(f"catalog: {kind} must be a list")
        names: List[str] = []
        for e in entries:
            # Entries are either bare names or {name, description}.
            name = e.get("name") if isinstance(e, dict) else e
            name = str(name or "").strip()
            if name and name not in names:
                names.append(name)
        out[kind] = names
    return out
