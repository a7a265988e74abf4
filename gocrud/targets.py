from __future__ import annotations

from typing import Dict, List, Sequence

from . import templates as tpl
from .models import MutationTarget

DEFAULT_MAIN_PATHS = ("cmd/server/main.go", "main.go", "cmd/main.go")
DEFAULT_CONTAINER_PATHS = ("internal/di/container.go",)

ENTRYPOINT = "entrypoint"
CONTAINER = "container"

ROUTES_ENTRY = """// ${entity} routes
${camel}Handler := container.${entity}Handler()
router.HandleFunc("${api_prefix}/${route}", ${camel}Handler.Create${entity}).Methods("POST")
router.HandleFunc("${api_prefix}/${route}/{id}", ${camel}Handler.Get${entity}).Methods("GET")
router.HandleFunc("${api_prefix}/${route}/{id}", ${camel}Handler.Update${entity}).Methods("PUT")
router.HandleFunc("${api_prefix}/${route}/{id}", ${camel}Handler.Delete${entity}).Methods("DELETE")
router.HandleFunc("${api_prefix}/${route}", ${camel}Handler.List${entity}s).Methods("GET")"""

GETTERS_ENTRY = """
func (c *Container) ${entity}Handler() *http.${entity}Handler {
	return c.${camel}Handler
}

func (c *Container) ${entity}UseCase() usecase.${entity}UseCase {
	return c.${lower}UC
}

func (c *Container) ${entity}Repository() repository.${entity}Repository {
	return c.${lower}Repo
}"""


def build_targets(main_paths: Sequence[str] = DEFAULT_MAIN_PATHS,
                  container_paths: Sequence[str] = DEFAULT_CONTAINER_PATHS) -> List[MutationTarget]:
    main = tuple(main_paths)
    di = tuple(container_paths)
    return [
        MutationTarget(
            name="automigrate",
            candidate_paths=main,
            marker=tpl.AUTOMIGRATE_MARKER,
            aggregate=tpl.AUTOMIGRATE_AGGREGATE,
            entry="&domain.${entity}{},",
            required_import="${module}/internal/domain",
            description="GORM auto-migration list",
            tags=(ENTRYPOINT,),
        ),
        MutationTarget(
            # marker only: code at the end of main() runs after ListenAndServe blocks
            name="routes",
            candidate_paths=main,
            marker=tpl.ROUTES_MARKER,
            entry=ROUTES_ENTRY,
            probe='"${api_prefix}/${route}"',
            required_import="${module}/internal/di",
            description="HTTP routes",
            tags=(ENTRYPOINT,),
        ),
        MutationTarget(
            name="container-repository",
            candidate_paths=di,
            marker=tpl.REPOSITORIES_MARKER,
            aggregate=tpl.CONTAINER_STRUCT_OPEN,
            entry="${lower}Repo repository.${entity}Repository",
            required_import="${module}/internal/repository",
            description="Container repository field",
            tags=(CONTAINER,),
        ),
        MutationTarget(
            name="container-usecase",
            candidate_paths=di,
            marker=tpl.USECASES_MARKER,
            aggregate=tpl.CONTAINER_STRUCT_OPEN,
            entry="${lower}UC usecase.${entity}UseCase",
            required_import="${module}/internal/usecase",
            description="Container use case field",
            tags=(CONTAINER,),
        ),
        MutationTarget(
            name="container-handler",
            candidate_paths=di,
            marker=tpl.HANDLERS_MARKER,
            aggregate=tpl.CONTAINER_STRUCT_OPEN,
            entry="${camel}Handler *http.${entity}Handler",
            required_import="${module}/internal/handler/http",
            description="Container handler field",
            tags=(CONTAINER,),
        ),
        MutationTarget(
            name="setup-repository",
            candidate_paths=di,
            aggregate=tpl.SETUP_REPOSITORIES_OPEN,
            entry="c.${lower}Repo = repository.NewPostgres${entity}Repository(c.db)",
            description="Repository construction",
            tags=(CONTAINER,),
        ),
        MutationTarget(
            name="setup-usecase",
            candidate_paths=di,
            aggregate=tpl.SETUP_USECASES_OPEN,
            entry="c.${lower}UC = usecase.New${entity}Service(c.${lower}Repo)",
            description="Use case construction",
            tags=(CONTAINER,),
        ),
        MutationTarget(
            name="setup-handler",
            candidate_paths=di,
            aggregate=tpl.SETUP_HANDLERS_OPEN,
            entry="c.${camel}Handler = http.New${entity}Handler(c.${lower}UC)",
            description="Handler construction",
            tags=(CONTAINER,),
        ),
        MutationTarget(
            name="getters",
            candidate_paths=di,
            marker=tpl.GETTERS_MARKER,
            entry=GETTERS_ENTRY,
            probe="func (c *Container) ${entity}Handler()",
            description="Container getters",
            tags=(CONTAINER,),
        ),
    ]


def targets_by_name(targets: Sequence[MutationTarget]) -> Dict[str, MutationTarget]:
    return {t.name: t for t in targets}


def select_targets(targets: Sequence[MutationTarget], only: Sequence[str]) -> List[MutationTarget]:
    """Filter by target name or tag; an empty selection keeps everything."""
    wanted = {x.strip() for x in only if x and x.strip()}
    if not wanted:
        return list(targets)
    return [t for t in targets if t.name in wanted or wanted.intersection(t.tags)]
