from __future__ import annotations

from pathlib import Path

import pytest

import gocrud.patcher as patcher_mod
from gocrud.errors import ErrorKind, PatchError
from gocrud.models import MutationTarget, PatchStatus
from gocrud.patcher import StructuralPatcher, atomic_write, ensure_import
from gocrud.targets import build_targets, targets_by_name
from gocrud.templates import ROUTES_MARKER, render_container_go, render_main_go

MODULE = "example.com/app"


def _setup(tmp_path: Path, rel: str, content: str) -> Path:
    pth = tmp_path / rel
    pth.parent.mkdir(parents=True, exist_ok=True)
    pth.write_text(content, encoding="utf-8")
    return pth


def _targets():
    return targets_by_name(build_targets())


def test_register_is_idempotent(tmp_path: Path) -> None:
    main = _setup(tmp_path, "cmd/server/main.go", render_main_go(MODULE))
    patcher = StructuralPatcher(tmp_path, MODULE)
    target = _targets()["automigrate"]

    assert patcher.register("User", target) == PatchStatus.APPLIED
    after_first = main.read_text(encoding="utf-8")
    assert f'"{MODULE}/internal/domain"' in after_first
    assert "\t\t&domain.User{},\n" in after_first

    assert patcher.register("User", target) == PatchStatus.ALREADY_PRESENT
    assert main.read_text(encoding="utf-8") == after_first


def test_commented_entry_does_not_block_insertion(tmp_path: Path) -> None:
    content = (
        "package main\n\n"
        "func run() {\n"
        "\tentities := []interface{}{\n"
        "\t\t// &domain.User{},\n"
        "\t}\n"
        "\t_ = entities\n"
        "}\n"
    )
    main = _setup(tmp_path, "main.go", content)
    patcher = StructuralPatcher(tmp_path, MODULE)

    assert patcher.register("User", _targets()["automigrate"]) == PatchStatus.APPLIED
    text = main.read_text(encoding="utf-8")
    assert text.count("&domain.User{},") == 2
    assert "\t\t// &domain.User{},\n\t\t&domain.User{},\n\t}" in text


def test_aggregate_fallback_and_import_synthesis(tmp_path: Path) -> None:
    content = (
        "package main\n\n"
        "func run() {\n"
        "\tentities := []interface{}{\n"
        "\t\t&domain.Order{},\n"
        "\t}\n"
        "\t_ = entities\n"
        "}\n"
    )
    main = _setup(tmp_path, "cmd/main.go", content)
    patcher = StructuralPatcher(tmp_path, MODULE)

    assert patcher.register("User", _targets()["automigrate"]) == PatchStatus.APPLIED
    text = main.read_text(encoding="utf-8")
    assert text.startswith(f'package main\n\nimport (\n\t"{MODULE}/internal/domain"\n)\n\nfunc run()')
    assert "\t\t&domain.Order{},\n\t\t&domain.User{},\n\t}" in text


def test_inline_empty_aggregate_is_expanded(tmp_path: Path) -> None:
    main = _setup(tmp_path, "main.go", "package main\n\nvar entities = []interface{}{}\n")
    patcher = StructuralPatcher(tmp_path, MODULE)
    target = _targets()["automigrate"]
    inline = MutationTarget(
        name="inline",
        candidate_paths=("main.go",),
        aggregate="entities = []interface{}{",
        entry=target.entry,
    )

    assert patcher.register("User", inline) == PatchStatus.APPLIED
    assert "var entities = []interface{}{\n\t&domain.User{},\n}\n" in main.read_text(encoding="utf-8")


def test_candidate_paths_are_probed_in_order(tmp_path: Path) -> None:
    _setup(tmp_path, "main.go", render_main_go(MODULE))
    preferred = _setup(tmp_path, "cmd/server/main.go", render_main_go(MODULE))
    patcher = StructuralPatcher(tmp_path, MODULE)

    assert patcher.resolve_path(_targets()["automigrate"]) == preferred


def test_target_not_found(tmp_path: Path) -> None:
    patcher = StructuralPatcher(tmp_path, MODULE)
    with pytest.raises(PatchError) as exc_info:
        patcher.register("User", _targets()["automigrate"])
    assert exc_info.value.kind == ErrorKind.TARGET_NOT_FOUND
    assert exc_info.value.recoverable


def test_no_insertion_point_leaves_file_untouched(tmp_path: Path) -> None:
    original = "package main\n\nfunc main() {}\n"
    main = _setup(tmp_path, "main.go", original)
    patcher = StructuralPatcher(tmp_path, MODULE)

    with pytest.raises(PatchError) as exc_info:
        patcher.register("User", _targets()["automigrate"])
    assert exc_info.value.kind == ErrorKind.NO_INSERTION_POINT
    assert exc_info.value.path == "main.go"
    assert main.read_text(encoding="utf-8") == original


def test_read_failure(tmp_path: Path) -> None:
    main = tmp_path / "main.go"
    main.write_bytes(b"\xff\xfe\xfa broken")
    patcher = StructuralPatcher(tmp_path, MODULE)

    with pytest.raises(PatchError) as exc_info:
        patcher.register("User", _targets()["automigrate"])
    assert exc_info.value.kind == ErrorKind.READ_FAILURE
    assert not exc_info.value.recoverable


def test_write_failure_wraps_os_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _setup(tmp_path, "main.go", render_main_go(MODULE))

    def boom(path: Path, text: str) -> None:
        raise PermissionError("read-only")

    monkeypatch.setattr(patcher_mod, "atomic_write", boom)
    patcher = StructuralPatcher(tmp_path, MODULE)

    with pytest.raises(PatchError) as exc_info:
        patcher.register("User", _targets()["automigrate"])
    assert exc_info.value.kind == ErrorKind.WRITE_FAILURE
    assert isinstance(exc_info.value.__cause__, PermissionError)


def test_dry_run_writes_nothing(tmp_path: Path) -> None:
    original = render_main_go(MODULE)
    main = _setup(tmp_path, "main.go", original)
    lines = []
    patcher = StructuralPatcher(tmp_path, MODULE, dry_run=True, on_line=lines.append)

    assert patcher.register("User", _targets()["automigrate"]) == PatchStatus.APPLIED
    assert main.read_text(encoding="utf-8") == original
    assert any(ln.startswith("[DRY]") for ln in lines)


def test_backup_copies_original_once(tmp_path: Path) -> None:
    original = render_main_go(MODULE)
    _setup(tmp_path, "main.go", original)
    patcher = StructuralPatcher(tmp_path, MODULE, backup_mode="all")
    targets = _targets()

    patcher.register("User", targets["automigrate"])
    patcher.register("User", targets["routes"])

    backups = list((tmp_path / ".gocrud" / "backups").glob("*/main.go"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == original


def test_invalid_backup_mode() -> None:
    with pytest.raises(ValueError):
        StructuralPatcher(Path("."), MODULE, backup_mode="sometimes")


def test_container_targets(tmp_path: Path) -> None:
    container = _setup(tmp_path, "internal/di/container.go", render_container_go())
    patcher = StructuralPatcher(tmp_path, MODULE)
    di_targets = [t for t in build_targets() if "container" in t.tags]

    for entity in ("User", "Product"):
        for target in di_targets:
            assert patcher.register(entity, target) == PatchStatus.APPLIED
    text = container.read_text(encoding="utf-8")

    assert "\t// Repositories\n\tproductRepo repository.ProductRepository\n\tuserRepo repository.UserRepository\n" in text
    assert "func (c *Container) setupRepositories() {\n\tc.userRepo = repository.NewPostgresUserRepository(c.db)\n" in text
    assert "\tc.productUC = usecase.NewProductService(c.productRepo)\n}" in text
    assert "\tc.userHandler = http.NewUserHandler(c.userUC)\n" in text
    assert "func (c *Container) UserHandler() *http.UserHandler {\n\treturn c.userHandler\n}" in text
    for imp in ("repository", "usecase", "handler/http"):
        assert text.count(f'"{MODULE}/internal/{imp}"') == 1

    for target in di_targets:
        assert patcher.register("User", target) == PatchStatus.ALREADY_PRESENT
    assert container.read_text(encoding="utf-8") == text


def test_routes_use_api_prefix(tmp_path: Path) -> None:
    main = _setup(tmp_path, "main.go", render_main_go(MODULE))
    patcher = StructuralPatcher(tmp_path, MODULE, api_prefix="/v2/")

    assert patcher.register("Category", _targets()["routes"]) == PatchStatus.APPLIED
    text = main.read_text(encoding="utf-8")
    assert '\t// Register feature routes here\n\t// Category routes\n\tcategoryHandler := container.CategoryHandler()\n' in text
    assert 'router.HandleFunc("/v2/categories", categoryHandler.CreateCategory).Methods("POST")' in text


@pytest.mark.parametrize(
    "before, after",
    [
        (
            'package main\n\nimport (\n\t"fmt"\n)\n',
            'package main\n\nimport (\n\t"fmt"\n\t"x/y"\n)\n',
        ),
        (
            'package main\n\nimport "fmt"\n\nfunc main() {}\n',
            'package main\n\nimport (\n\t"fmt"\n\t"x/y"\n)\n\nfunc main() {}\n',
        ),
        (
            "package main\n\nfunc main() {}\n",
            'package main\n\nimport (\n\t"x/y"\n)\n\nfunc main() {}\n',
        ),
    ],
)
def test_ensure_import(before: str, after: str) -> None:
    text, changed = ensure_import(before, "x/y")
    assert changed
    assert text == after

    again, changed = ensure_import(text, "x/y")
    assert not changed
    assert again == text


def test_atomic_write_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b.go"
    atomic_write(target, "one\n")
    atomic_write(target, "two\n")

    assert target.read_text(encoding="utf-8") == "two\n"
    assert [p.name for p in target.parent.iterdir()] == ["b.go"]


@pytest.mark.parametrize(
    "literal, expected",
    [
        ("{&domain.Order{}}", "{&domain.Order{},\n\t&domain.User{},\n}"),
        ("{&domain.Order{},}", "{&domain.Order{},\n\t&domain.User{},\n}"),
        ("{&domain.Order{} }", "{&domain.Order{},\n\t&domain.User{},\n}"),
    ],
)
def test_inline_aggregate_keeps_previous_element_separated(tmp_path: Path, literal: str, expected: str) -> None:
    main = _setup(tmp_path, "main.go", f"package main\n\nvar entities = []interface{{}}{literal}\n")
    patcher = StructuralPatcher(tmp_path, MODULE)
    inline = MutationTarget(
        name="inline",
        candidate_paths=("main.go",),
        aggregate="entities = []interface{}{",
        entry=_targets()["automigrate"].entry,
    )

    assert patcher.register("User", inline) == PatchStatus.APPLIED
    assert f"var entities = []interface{{}}{expected}\n" in main.read_text(encoding="utf-8")


def test_crlf_line_endings_are_preserved(tmp_path: Path) -> None:
    main = tmp_path / "main.go"
    main.write_bytes(render_main_go(MODULE).replace("\n", "\r\n").encode("utf-8"))
    patcher = StructuralPatcher(tmp_path, MODULE)
    targets = _targets()

    assert patcher.register("User", targets["automigrate"]) == PatchStatus.APPLIED
    assert patcher.register("User", targets["routes"]) == PatchStatus.APPLIED
    data = main.read_bytes()

    assert data.count(b"\n") == data.count(b"\r\n")
    assert f'\t"{MODULE}/internal/domain"\r\n'.encode() in data
    assert b"\t\t&domain.User{},\r\n" in data
    assert b"\tuserHandler := container.UserHandler()\r\n" in data

    assert patcher.register("User", targets["automigrate"]) == PatchStatus.ALREADY_PRESENT
    assert main.read_bytes() == data


def test_ensure_import_follows_crlf() -> None:
    before = 'package main\r\n\r\nimport "fmt"\r\n\r\nfunc main() {}\r\n'
    text, changed = ensure_import(before, "x/y")

    assert changed
    assert text == 'package main\r\n\r\nimport (\r\n\t"fmt"\r\n\t"x/y"\r\n)\r\n\r\nfunc main() {}\r\n'


def test_routes_without_marker_are_not_appended_to_main(tmp_path: Path) -> None:
    original = render_main_go(MODULE).replace(ROUTES_MARKER, "")
    main = _setup(tmp_path, "main.go", original)
    patcher = StructuralPatcher(tmp_path, MODULE)

    with pytest.raises(PatchError) as exc_info:
        patcher.register("User", _targets()["routes"])
    assert exc_info.value.kind == ErrorKind.NO_INSERTION_POINT
    assert main.read_text(encoding="utf-8") == original
