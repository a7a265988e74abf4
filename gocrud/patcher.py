from __future__ import annotations

import os
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple

from .errors import ErrorKind, PatchError
from .gosource import find_in_code, line_indent, line_start
from .locator import entry_exists, existence_region, locate
from .models import EntityNames, InsertionPoint, MutationTarget, PatchStatus, Strategy

LogFn = Callable[[str], None]

BACKUP_MODES = ("none", "all")

IMPORT_BLOCK_RE = re.compile(r"(?m)^import\s*\(")
SINGLE_IMPORT_RE = re.compile(r'(?m)^import\s+((?:[A-Za-z_.][A-Za-z0-9_]*\s+)?"[^"\r\n]+")[ \t]*(?=\r?$)')
PACKAGE_RE = re.compile(r"(?m)^package\s+[A-Za-z_][A-Za-z0-9_]*[^\r\n]*")

# ---------------- file io ----------------

def relpath(pth: Path, root: Path) -> str:
    try:
        return str(pth.relative_to(root))
    except ValueError:
        return str(pth)


def atomic_write(path: Path, text: str) -> None:
    """Write through a temp file in the same directory and rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        if path.exists():
            shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise

# ---------------- text edits ----------------

def line_ending(content: str) -> str:
    """The file's newline convention: CRLF if any line uses it, else LF."""
    return "\r\n" if "\r\n" in content else "\n"


def ensure_import(content: str, import_path: str, eol: Optional[str] = None) -> Tuple[str, bool]:
    """Make sure ``"import_path"`` is imported. Returns (content, changed).

    Presence is a plain substring test on the quoted path, comments included.
    """
    quoted = f'"{import_path}"'
    if quoted in content:
        return content, False
    nl = eol or line_ending(content)

    m = IMPORT_BLOCK_RE.search(content)
    if m:
        close = find_in_code(content, ")", m.end())
        if close != -1:
            ls = line_start(content, close)
            if content[ls:close].strip() == "":
                return content[:ls] + f"\t{quoted}{nl}" + content[ls:], True
            return content[:close] + f"{nl}\t{quoted}{nl}" + content[close:], True

    m = SINGLE_IMPORT_RE.search(content)
    if m:
        block = f"import ({nl}\t{m.group(1)}{nl}\t{quoted}{nl})"
        return content[:m.start()] + block + content[m.end():], True

    m = PACKAGE_RE.search(content)
    if m:
        return content[:m.end()] + f"{nl}{nl}import ({nl}\t{quoted}{nl})" + content[m.end():], True

    return f"import ({nl}\t{quoted}{nl}){nl}{nl}" + content, True


def splice(content: str, point: InsertionPoint, lines: List[str], eol: Optional[str] = None) -> str:
    """Insert entry lines at ``point`` using the surrounding indentation."""
    nl = eol or line_ending(content)
    if point.strategy == Strategy.MARKER_COMMENT:
        indent = line_indent(content, point.offset)
        snippet = "".join(nl + (indent + ln if ln.strip() else "") for ln in lines)
        return content[:point.offset] + snippet + content[point.offset:]

    ls = line_start(content, point.offset)
    prefix = content[ls:point.offset]
    if prefix.strip() == "":
        # closing brace on its own line: new lines go right above it
        inner = prefix + "\t"
        snippet = "".join((inner + ln if ln.strip() else "") + nl for ln in lines)
        return content[:ls] + snippet + content[ls:]

    # inline close: the last element needs a comma once it is no longer last
    head = content[:point.offset].rstrip(" \t")
    if not head.endswith(("{", ",")):
        head += ","
    base = line_indent(content, point.offset)
    inner = base + "\t"
    snippet = nl + nl.join(inner + ln if ln.strip() else "" for ln in lines) + nl + base
    return head + snippet + content[point.offset:]

# ---------------- patcher ----------------

class StructuralPatcher:
    """Registers an entity in previously generated files, at most once per target.

    Every call re-reads the target from disk; the file itself is the only state.
    Import injection and the splice land in the same write.
    """

    def __init__(
        self,
        root: Path,
        module_name: str,
        *,
        api_prefix: str = "/api/v1",
        dry_run: bool = False,
        backup_mode: str = "none",
        on_line: Optional[LogFn] = None,
    ) -> None:
        if backup_mode not in BACKUP_MODES:
            raise ValueError(f"backup_mode must be one of {BACKUP_MODES}, got {backup_mode!r}")
        self.root = root
        self.module_name = module_name
        self.api_prefix = api_prefix
        self.dry_run = dry_run
        self.backup_mode = backup_mode
        self.on_line = on_line
        self._backup_dir: Optional[Path] = None
        self._backed_up: Set[Path] = set()

    def _log(self, msg: str) -> None:
        if self.on_line:
            self.on_line(msg)

    def names(self, entity: str) -> EntityNames:
        return EntityNames(entity=entity, module=self.module_name, api_prefix=self.api_prefix)

    def resolve_path(self, target: MutationTarget) -> Path:
        for cand in target.candidate_paths:
            pth = self.root / cand
            if pth.is_file():
                return pth
        raise PatchError(
            ErrorKind.TARGET_NOT_FOUND,
            f"{target.name}: none of {', '.join(target.candidate_paths)} exists under {self.root}",
        )

    def read(self, path: Path) -> str:
        try:
            with open(path, encoding="utf-8", newline="") as fh:
                return fh.read()
        except (OSError, UnicodeDecodeError) as exc:
            rel = relpath(path, self.root)
            raise PatchError(ErrorKind.READ_FAILURE, f"could not read {rel}: {exc}", path=rel) from exc

    def write(self, path: Path, text: str) -> None:
        rel = relpath(path, self.root)
        if self.dry_run:
            self._log(f"[DRY] would update {rel}")
            return
        try:
            self._backup(path)
            atomic_write(path, text)
        except OSError as exc:
            raise PatchError(ErrorKind.WRITE_FAILURE, f"could not write {rel}: {exc}", path=rel) from exc

    def _backup(self, path: Path) -> None:
        if self.backup_mode != "all" or path in self._backed_up or not path.exists():
            return
        if self._backup_dir is None:
            self._backup_dir = self.root / ".gocrud" / "backups" / time.strftime("%Y%m%d-%H%M%S")
        dst = self._backup_dir / relpath(path, self.root)
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, dst)
        self._backed_up.add(path)

    def register(self, entity: str, target: MutationTarget) -> PatchStatus:
        rendered = target.render(self.names(entity))
        path = self.resolve_path(target)
        rel = relpath(path, self.root)
        content = self.read(path)

        if entry_exists(content, existence_region(content, target), rendered.probe):
            self._log(f"[SKIP] {target.name}: {entity} already present in {rel}")
            return PatchStatus.ALREADY_PRESENT

        text = content
        eol = line_ending(content)
        if rendered.import_path:
            text, added = ensure_import(text, rendered.import_path, eol)
            if added:
                self._log(f"[OK] {target.name}: import \"{rendered.import_path}\" added to {rel}")

        try:
            point = locate(text, target)
        except PatchError as exc:
            exc.path = rel
            raise

        self.write(path, splice(text, point, rendered.lines, eol))
        self._log(f"[OK] {target.name}: {entity} registered in {rel} ({point.strategy.value})")
        return PatchStatus.APPLIED
