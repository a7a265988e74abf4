from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .patcher import BACKUP_MODES
from .targets import DEFAULT_CONTAINER_PATHS, DEFAULT_MAIN_PATHS

SETTINGS_DIR = ".gocrud"
SETTINGS_FILE = "settings.json"
DEFAULT_MODULE = "myproject"
DEFAULT_API_PREFIX = "/api/v1"


@dataclass
class Project:
    root: Path
    module_name: str
    api_prefix: str = DEFAULT_API_PREFIX
    main_paths: List[str] = field(default_factory=lambda: list(DEFAULT_MAIN_PATHS))
    container_paths: List[str] = field(default_factory=lambda: list(DEFAULT_CONTAINER_PATHS))
    backup_mode: str = "none"
    dry_run: bool = False


def detect_module_name(root: Path) -> str:
    gomod = root / "go.mod"
    if not gomod.is_file():
        return DEFAULT_MODULE
    for line in gomod.read_text(encoding="utf-8", errors="replace").splitlines():
        line = line.strip()
        if line.startswith("module "):
            return line[len("module"):].strip().strip('"') or DEFAULT_MODULE
    return DEFAULT_MODULE


def load_settings(root: Path) -> Dict[str, Any]:
    """Read .gocrud/settings.json; a missing or unreadable file means no overrides."""
    cfg = root / SETTINGS_DIR / SETTINGS_FILE
    if not cfg.exists():
        return {}
    try:
        data = json.loads(cfg.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _str_list(value: Any, default: List[str]) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if isinstance(value, list):
        out = [str(x).strip() for x in value if str(x).strip()]
        if out:
            return out
    return list(default)


def load_project(
    root: Path,
    *,
    module_name: Optional[str] = None,
    api_prefix: Optional[str] = None,
    backup_mode: Optional[str] = None,
    dry_run: bool = False,
) -> Project:
    """Build the explicit Project: arguments win over settings.json, which wins over defaults."""
    settings = load_settings(root)
    mode = backup_mode or str(settings.get("backup_mode", "none"))
    if mode not in BACKUP_MODES:
        mode = "none"
    return Project(
        root=root,
        module_name=module_name or str(settings.get("module") or "") or detect_module_name(root),
        api_prefix=api_prefix or str(settings.get("api_prefix") or DEFAULT_API_PREFIX),
        main_paths=_str_list(settings.get("main_paths"), list(DEFAULT_MAIN_PATHS)),
        container_paths=_str_list(settings.get("container_paths"), list(DEFAULT_CONTAINER_PATHS)),
        backup_mode=mode,
        dry_run=dry_run,
    )
