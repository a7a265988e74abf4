#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
gocrud command line.

- validate : check a field spec and show the parsed fields
- init     : write main.go + DI container skeletons (with insertion markers)
- entity   : generate internal/domain/<entity>.go and register it for auto-migration
- register : wire existing entities into main.go and the DI container (idempotent);
             without names, detect them from internal/domain and verify the result

Deps:
  pip install rich
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from gocrud import FailurePolicy, FieldSpecError, GocrudHub, PatchError, load_project, parse_fields
from gocrud.console import p, show_fields, show_report
from gocrud.patcher import BACKUP_MODES


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def _resolve_root(raw: str) -> Optional[Path]:
    root = Path(raw).expanduser().resolve()
    if not root.exists() or not root.is_dir():
        p(f"[ERROR] Folder not found: {root}")
        return None
    return root


def _hub(args: argparse.Namespace) -> Optional[GocrudHub]:
    root = _resolve_root(args.root)
    if root is None:
        return None
    proj = load_project(
        root,
        module_name=getattr(args, "module", None),
        api_prefix=getattr(args, "api_prefix", None),
        backup_mode=getattr(args, "backup_mode", None),
        dry_run=getattr(args, "dry_run", False),
    )
    p(f"Project: {proj.root}  module={proj.module_name}  dry-run={proj.dry_run}")
    return GocrudHub(proj, on_line=p)


def run_validate(args: argparse.Namespace) -> int:
    try:
        fields = parse_fields(args.fields)
    except FieldSpecError as e:
        p(f"[ERROR] {e}")
        return 2
    show_fields(args.entity or "entity", fields)
    p(f"[OK] {len(fields.user_fields())} field(s) valid")
    return 0


def run_init(args: argparse.Namespace) -> int:
    hub = _hub(args)
    if hub is None:
        return 2
    try:
        changes = hub.init_project()
    except PatchError as e:
        p(f"[ERROR] {e}")
        return 1
    if not changes:
        p("Nothing to create.")
    return 0


def run_entity(args: argparse.Namespace) -> int:
    hub = _hub(args)
    if hub is None:
        return 2
    try:
        result = hub.generate_entity(
            args.name,
            args.fields,
            register=not args.no_register,
            policy=FailurePolicy(args.policy),
        )
    except FieldSpecError as e:
        p(f"[ERROR] {e}")
        return 2
    except PatchError as e:
        p(f"[ERROR] {e}")
        return 1

    show_fields(args.name, result.fields)
    if result.registration is not None:
        show_report(result.registration)
        if not result.registration.ok:
            p("[WARN] Entity generated, but registration needs the manual steps above.")
            return 1
    return 0


def run_register(args: argparse.Namespace) -> int:
    hub = _hub(args)
    if hub is None:
        return 2
    entities = _split_csv(args.entities)
    if args.all or not entities:
        return run_integrate(hub, FailurePolicy(args.policy))

    rc = 0
    for name in entities:
        try:
            report = hub.register_entity(name, policy=FailurePolicy(args.policy), only=_split_csv(args.only))
        except FieldSpecError as e:
            p(f"[ERROR] {e}")
            return 2
        except PatchError as e:
            p(f"[ERROR] {name}: {e}")
            return 1
        show_report(report)
        if report.partial:
            p(f"[WARN] {name}: partially registered ({len(report.failed)} target(s) need manual steps)")
            rc = 1
        elif not report.ok:
            p(f"[WARN] {name}: not registered automatically")
            rc = 1
    return rc


def run_integrate(hub: GocrudHub, policy: FailurePolicy) -> int:
    try:
        result = hub.integrate(policy=policy)
    except PatchError as e:
        p(f"[ERROR] {e}")
        return 1
    if not result.entities:
        p("[WARN] No entities found under internal/domain or internal/handler/http.")
        return 1
    p(f"Detected: {', '.join(result.entities)}")
    for report in result.reports:
        show_report(report)
    issues = result.verification.issues + sum(1 for r in result.reports if not r.ok)
    if issues:
        p(f"[WARN] Integration finished with {issues} issue(s)")
        return 1
    p("[OK] Integration complete")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Go clean-architecture scaffolding helper")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_project(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--root", default=".", help="Go project root (default: current directory)")
        sp.add_argument("--module", default=None, help="Override the module name from go.mod")
        sp.add_argument("--api-prefix", default=None, help="Route prefix (default: /api/v1)")
        sp.add_argument("--backup-mode", default=None, choices=list(BACKUP_MODES), help="Backup patched files")
        sp.add_argument("--dry-run", action="store_true", help="Do not write files")

    def add_policy(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--policy", default=FailurePolicy.REPORT.value, choices=[x.value for x in FailurePolicy],
                        help="abort on the first patch error or report and continue")

    val = sub.add_parser("validate", help="Validate a field spec")
    val.add_argument("--fields", required=True, help='Fields "name:string,age:int"')
    val.add_argument("--entity", default="", help="Entity name used in the output title")

    init = sub.add_parser("init", help="Create main.go and DI container skeletons")
    add_project(init)

    ent = sub.add_parser("entity", help="Generate a domain entity and register it")
    ent.add_argument("name", help="Entity name (e.g. User)")
    ent.add_argument("--fields", required=True, help='Fields "name:string,age:int"')
    ent.add_argument("--no-register", action="store_true", help="Skip auto-migration registration")
    add_project(ent)
    add_policy(ent)

    reg = sub.add_parser("register", help="Register entities in main.go and the DI container")
    reg.add_argument("entities", nargs="?", default="",
                     help="Comma-separated entity names (e.g. User,Order); empty means every detected entity")
    reg.add_argument("--all", action="store_true", help="Detect entities from internal/domain and handlers, then verify")
    reg.add_argument("--only", default="", help="Comma-separated target names or groups (entrypoint, container)")
    add_project(reg)
    add_policy(reg)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "validate":
        return run_validate(args)
    if args.command == "init":
        return run_init(args)
    if args.command == "entity":
        return run_entity(args)
    if args.command == "register":
        return run_register(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
