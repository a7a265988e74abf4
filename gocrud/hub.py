from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .errors import ErrorKind, FieldSpecError, PatchError
from .fields import FieldList, parse_fields, validate_entity_name
from .locator import entry_exists
from .models import MutationTarget, PatchStatus
from .patcher import LogFn, StructuralPatcher, atomic_write, relpath
from .project import SETTINGS_DIR, Project
from .targets import build_targets, select_targets, targets_by_name
from .templates import BOT_MARKER, render_container_go, render_entity_go, render_main_go

DOMAIN_DIR = Path("internal") / "domain"
HANDLER_DIR = Path("internal") / "handler" / "http"
HANDLER_SUFFIX = "_handler.go"
SHARED_DOMAIN_FILES = frozenset({"errors", "validations", "common"})
STRUCT_RE = re.compile(r"(?m)^type\s+([A-Z][A-Za-z0-9]*)\s+struct\b")
CONTAINER_CALL = "di.NewContainer"


class FailurePolicy(str, Enum):
    ABORT = "abort"    # re-raise the first patch error
    REPORT = "report"  # record it, print manual steps, keep going


@dataclass
class TargetOutcome:
    target: str
    status: Optional[PatchStatus] = None
    error: Optional[PatchError] = None
    path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RegistrationReport:
    entity: str
    outcomes: List[TargetOutcome] = field(default_factory=list)

    @property
    def applied(self) -> List[str]:
        return [o.target for o in self.outcomes if o.status == PatchStatus.APPLIED]

    @property
    def already_present(self) -> List[str]:
        return [o.target for o in self.outcomes if o.status == PatchStatus.ALREADY_PRESENT]

    @property
    def failed(self) -> List[TargetOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        """Some targets were patched (or already were) while others failed."""
        return bool(self.failed) and len(self.failed) < len(self.outcomes)


@dataclass
class EntityResult:
    path: Path
    fields: FieldList
    registration: Optional[RegistrationReport]


@dataclass
class VerificationReport:
    container: Optional[str] = None
    entrypoint: Optional[str] = None
    missing_routes: List[str] = field(default_factory=list)

    @property
    def issues(self) -> int:
        return int(self.container is None) + int(self.entrypoint is None) + len(self.missing_routes)

    @property
    def ok(self) -> bool:
        return self.issues == 0


@dataclass
class IntegrationResult:
    entities: List[str]
    reports: List[RegistrationReport]
    verification: VerificationReport

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.reports) and self.verification.ok


def _pascal(stem: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in stem.split("_") if part)


class GocrudHub:
    def __init__(self, project: Project, *, on_line: Optional[LogFn] = None) -> None:
        self.project = project
        self.on_line = on_line
        self.patcher = StructuralPatcher(
            project.root,
            project.module_name,
            api_prefix=project.api_prefix,
            dry_run=project.dry_run,
            backup_mode=project.backup_mode,
            on_line=on_line,
        )
        self.targets = build_targets(project.main_paths, project.container_paths)

    def _log(self, msg: str) -> None:
        if self.on_line:
            self.on_line(msg)

    # ---------------- registration ----------------

    def register_entity(
        self,
        entity: str,
        policy: FailurePolicy = FailurePolicy.REPORT,
        only: Sequence[str] = (),
    ) -> RegistrationReport:
        """Apply every selected target independently.

        There is no cross-file transaction: with REPORT, a failure on one
        target leaves the others applied and shows up as ``report.partial``.
        """
        validate_entity_name(entity)
        report = RegistrationReport(entity=entity)
        for target in select_targets(self.targets, only):
            outcome = TargetOutcome(target=target.name)
            report.outcomes.append(outcome)
            try:
                outcome.path = relpath(self.patcher.resolve_path(target), self.project.root)
                outcome.status = self.patcher.register(entity, target)
            except PatchError as exc:
                if policy == FailurePolicy.ABORT:
                    raise
                outcome.error = exc
                self._log(f"[WARN] {target.name}: {exc.detail}")
                for line in self.manual_instructions(entity, target):
                    self._log(line)
        return report

    def manual_instructions(self, entity: str, target: MutationTarget) -> List[str]:
        rendered = target.render(self.patcher.names(entity))
        out = [f"Manual integration of {entity} ({target.description or target.name}):"]
        step = 1
        out.append(f"  {step}. Open {' or '.join(target.candidate_paths)}")
        step += 1
        if rendered.import_path:
            out.append(f"  {step}. Add to the import block: \"{rendered.import_path}\"")
            step += 1
        if target.marker:
            out.append(f"  {step}. Below the line `{target.marker}` add:")
        else:
            out.append(f"  {step}. Inside `{target.aggregate}`, right before its closing brace, add:")
        out.extend(f"       {ln}" for ln in rendered.lines if ln.strip())
        return out

    # ---------------- integration ----------------

    def _domain_entity(self, path: Path, stem: str) -> str:
        # prefer the struct name, file names lose the casing (orderitem.go)
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return _pascal(stem)
        wanted = stem.replace("_", "").lower()
        for name in STRUCT_RE.findall(content):
            if name.lower() == wanted:
                return name
        return _pascal(stem)

    def detect_entities(self) -> List[str]:
        """Entities that already have a domain file or an HTTP handler.

        Domain files come first, then handlers not matched by a domain file.
        Shared domain files (errors, validations, common) and seeds are skipped.
        """
        root = self.project.root
        candidates: List[str] = []

        domain_dir = root / DOMAIN_DIR
        if domain_dir.is_dir():
            for pth in sorted(domain_dir.glob("*.go")):
                stem = pth.stem
                if stem in SHARED_DOMAIN_FILES or stem.endswith(("_seeds", "_test")):
                    continue
                candidates.append(self._domain_entity(pth, stem))

        handler_dir = root / HANDLER_DIR
        if handler_dir.is_dir():
            for pth in sorted(handler_dir.glob("*" + HANDLER_SUFFIX)):
                candidates.append(_pascal(pth.name[:-len(HANDLER_SUFFIX)]))

        found: List[str] = []
        seen = set()
        for name in candidates:
            if name.lower() in seen:
                continue
            try:
                validate_entity_name(name)
            except FieldSpecError as exc:
                self._log(f"[WARN] skipping {name}: {exc.detail}")
                continue
            seen.add(name.lower())
            found.append(name)
        return found

    def verify_integration(self, entities: Sequence[str]) -> VerificationReport:
        """Check that the container exists and that the entry point serves every entity."""
        root = self.project.root
        report = VerificationReport()

        report.container = next((p for p in self.project.container_paths if (root / p).is_file()), None)
        if report.container:
            self._log(f"[OK] DI container: {report.container}")
        else:
            self._log(f"[WARN] DI container not found ({', '.join(self.project.container_paths)})")

        routes = targets_by_name(self.targets)["routes"]
        for rel in self.project.main_paths:
            pth = root / rel
            if not pth.is_file():
                continue
            content = self.patcher.read(pth)
            if CONTAINER_CALL not in content:
                continue
            report.entrypoint = rel
            self._log(f"[OK] Entry point wired: {rel}")
            for name in entities:
                probe = routes.render(self.patcher.names(name)).probe
                if entry_exists(content, (0, len(content)), probe):
                    self._log(f"[OK] {name} routes present")
                else:
                    report.missing_routes.append(name)
                    self._log(f"[WARN] {name} routes missing")
            break

        if report.entrypoint is None:
            self._log(f"[WARN] No entry point calls {CONTAINER_CALL}")
        return report

    def integrate(self, policy: FailurePolicy = FailurePolicy.REPORT) -> IntegrationResult:
        """Wire every detected entity into the entry point and container, then verify."""
        self.init_project()
        entities = self.detect_entities()
        reports = [self.register_entity(name, policy=policy) for name in entities]
        return IntegrationResult(entities=entities, reports=reports, verification=self.verify_integration(entities))

    # ---------------- generation ----------------

    def _write_generated(self, path: Path, content: str) -> Tuple[Path, bool]:
        """Write a generated file unless a hand-written one is in the way.

        Existing files without BOT_MARKER are left alone and the output goes
        to .gocrud/generated/<relative path> instead.
        """
        root = self.project.root
        target = path
        if path.exists():
            try:
                current = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                rel = relpath(path, root)
                raise PatchError(ErrorKind.READ_FAILURE, f"could not read {rel}: {exc}", path=rel) from exc
            if BOT_MARKER not in current:
                target = root / SETTINGS_DIR / "generated" / relpath(path, root)
        rel = relpath(target, root)
        if self.project.dry_run:
            self._log(f"[DRY] would write {rel}")
            return target, False
        try:
            atomic_write(target, content)
        except OSError as exc:
            raise PatchError(ErrorKind.WRITE_FAILURE, f"could not write {rel}: {exc}", path=rel) from exc
        return target, True

    def init_project(self) -> List[str]:
        """Write entry point and DI container skeletons that do not exist yet."""
        changes: List[str] = []
        root = self.project.root
        for rel_paths, content in (
            (self.project.main_paths, render_main_go(self.project.module_name)),
            (self.project.container_paths, render_container_go()),
        ):
            if any((root / p).is_file() for p in rel_paths):
                self._log(f"[SKIP] {rel_paths[0]} already exists")
                continue
            written, _ = self._write_generated(root / rel_paths[0], content)
            changes.append(f"Created {relpath(written, root)}")
            self._log(f"[OK] Created {relpath(written, root)}")
        return changes

    def generate_entity(
        self,
        entity: str,
        fields_spec: str,
        *,
        register: bool = True,
        policy: FailurePolicy = FailurePolicy.REPORT,
    ) -> EntityResult:
        # validation happens before any file is touched
        validate_entity_name(entity)
        fields = parse_fields(fields_spec)

        path = self.project.root / DOMAIN_DIR / f"{entity.lower()}.go"
        written, _ = self._write_generated(path, render_entity_go(entity, fields))
        self._log(f"[OK] Entity {entity} -> {relpath(written, self.project.root)}")

        registration = None
        if register:
            registration = self.register_entity(entity, policy=policy, only=("automigrate",))
        return EntityResult(path=written, fields=fields, registration=registration)
