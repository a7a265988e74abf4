from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from string import Template
from typing import Dict, List, Optional, Tuple


class Strategy(str, Enum):
    MARKER_COMMENT = "marker"
    AGGREGATE_LITERAL = "aggregate"


class PatchStatus(str, Enum):
    APPLIED = "applied"
    ALREADY_PRESENT = "already-present"


@dataclass(frozen=True)
class InsertionPoint:
    offset: int
    strategy: Strategy

# ---------------- naming ----------------

def lower_first(s: str) -> str:
    return s[:1].lower() + s[1:] if s else s


def pluralize(name: str) -> str:
    """Route plural. Names that already read as plural (``Users``) are kept."""
    low = name.lower()
    if low.endswith("y") and len(name) > 1 and low[-2] not in "aeiou":
        return name[:-1] + "ies"
    if low.endswith(("ss", "us", "x", "z", "ch", "sh")):
        return name + "es"
    if low.endswith("s"):
        return name
    return name + "s"


@dataclass(frozen=True)
class EntityNames:
    entity: str
    module: str
    api_prefix: str = "/api/v1"

    def mapping(self) -> Dict[str, str]:
        return {
            "entity": self.entity,
            "lower": self.entity.lower(),
            "camel": lower_first(self.entity),
            "route": pluralize(self.entity).lower(),
            "module": self.module,
            "api_prefix": self.api_prefix.rstrip("/"),
        }

# ---------------- targets ----------------

@dataclass(frozen=True)
class RenderedEntry:
    lines: List[str]
    probe: str
    import_path: Optional[str]


@dataclass(frozen=True)
class MutationTarget:
    """One class of file to patch and the code line(s) to register in it.

    ``entry``, ``probe`` and ``required_import`` are string.Template texts
    expanded with EntityNames.mapping(). ``probe`` defaults to the first entry
    line without its trailing comma.
    """
    name: str
    candidate_paths: Tuple[str, ...]
    entry: str
    marker: Optional[str] = None
    aggregate: Optional[str] = None
    probe: Optional[str] = None
    required_import: Optional[str] = None
    description: str = ""
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def render(self, names: EntityNames) -> RenderedEntry:
        values = names.mapping()
        lines = Template(self.entry).substitute(values).split("\n")
        if self.probe:
            probe = Template(self.probe).substitute(values)
        else:
            probe = next((ln.strip() for ln in lines if ln.strip()), "").rstrip(",")
        imp = Template(self.required_import).substitute(values) if self.required_import else None
        return RenderedEntry(lines=lines, probe=probe, import_path=imp)
