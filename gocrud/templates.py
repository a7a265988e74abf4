"""
Boilerplate that carries the insertion anchors.

The marker strings below are a contract with targets.py: the files written
here are the files later patched there. Dropping a marker from a template
silently degrades the patch to the aggregate-literal fallback.
"""
from __future__ import annotations

from typing import List, Set

from .fields import FieldList
from .typeexpr import (
    Array, Basic, Channel, Function, Map, Pointer, Qualified, Custom, Slice, TypeExpression,
)

BOT_MARKER = "// Code generated by gocrud."

AUTOMIGRATE_MARKER = "// Add domain entities here as they are created"
AUTOMIGRATE_AGGREGATE = "entities := []interface{}{"
ROUTES_MARKER = "// Register feature routes here"

REPOSITORIES_MARKER = "// Repositories"
USECASES_MARKER = "// Use Cases"
HANDLERS_MARKER = "// Handlers"
GETTERS_MARKER = "// Getters"
CONTAINER_STRUCT_OPEN = "type Container struct {"
SETUP_REPOSITORIES_OPEN = "func (c *Container) setupRepositories() {"
SETUP_USECASES_OPEN = "func (c *Container) setupUseCases() {"
SETUP_HANDLERS_OPEN = "func (c *Container) setupHandlers() {"

MAIN_GO = """package main

import (
	"fmt"
	"log"
	"net/http"
	"os"

	"github.com/gorilla/mux"
	"gorm.io/driver/postgres"
	"gorm.io/gorm"

	"{module}/internal/di"
)

func main() {
	db, err := gorm.Open(postgres.Open(os.Getenv("DATABASE_URL")), &gorm.Config{})
	if err != nil {
		log.Fatalf("database connection failed: %v", err)
	}

	if err := runAutoMigrations(db); err != nil {
		log.Fatalf("auto-migration failed: %v", err)
	}

	container := di.NewContainer(db)
	router := mux.NewRouter()
	_ = container

	{routes_marker}

	port := os.Getenv("PORT")
	if port == "" {
		port = "8080"
	}
	log.Printf("Server starting on port %s", port)
	log.Fatal(http.ListenAndServe(":"+port, router))
}

func runAutoMigrations(database *gorm.DB) error {
	if database == nil {
		return fmt.Errorf("database connection is nil")
	}

	{aggregate}
		{automigrate_marker}
		// Example: &domain.User{}, &domain.Product{}
	}

	for _, entity := range entities {
		if err := database.AutoMigrate(entity); err != nil {
			return fmt.Errorf("failed to auto-migrate entity %T: %w", entity, err)
		}
	}
	return nil
}
"""

CONTAINER_GO = """package di

import (
	"gorm.io/gorm"
)

{struct_open}
	db *gorm.DB

	{repositories}

	{usecases}

	{handlers}
}

func NewContainer(db *gorm.DB) *Container {
	c := &Container{db: db}
	c.setupRepositories()
	c.setupUseCases()
	c.setupHandlers()
	return c
}

{setup_repositories}
}

{setup_usecases}
}

{setup_handlers}
}

{getters}
"""


def _fill(template: str, **values: str) -> str:
    # str.format would choke on Go braces
    out = template
    for key, val in values.items():
        out = out.replace("{" + key + "}", val)
    return out


def render_main_go(module: str) -> str:
    return BOT_MARKER + "\n" + _fill(
        MAIN_GO,
        module=module,
        routes_marker=ROUTES_MARKER,
        aggregate=AUTOMIGRATE_AGGREGATE,
        automigrate_marker=AUTOMIGRATE_MARKER,
    )


def render_container_go() -> str:
    return BOT_MARKER + "\n" + _fill(
        CONTAINER_GO,
        struct_open=CONTAINER_STRUCT_OPEN,
        repositories=REPOSITORIES_MARKER,
        usecases=USECASES_MARKER,
        handlers=HANDLERS_MARKER,
        setup_repositories=SETUP_REPOSITORIES_OPEN,
        setup_usecases=SETUP_USECASES_OPEN,
        setup_handlers=SETUP_HANDLERS_OPEN,
        getters=GETTERS_MARKER,
    )

# ---------------- domain entity ----------------

def type_packages(texpr: TypeExpression, out: Set[str]) -> None:
    """Collect Go package qualifiers referenced by a type expression."""
    if isinstance(texpr, Basic):
        if "." in texpr.name:
            out.add(texpr.name.split(".", 1)[0])
    elif isinstance(texpr, (Slice, Array, Pointer, Channel)):
        type_packages(texpr.inner, out)
    elif isinstance(texpr, Map):
        type_packages(texpr.key, out)
        type_packages(texpr.value, out)
    elif isinstance(texpr, Function):
        for sub in texpr.params + texpr.results:
            type_packages(sub, out)
    elif isinstance(texpr, (Qualified, Custom)):
        if isinstance(texpr, Qualified):
            out.add(texpr.package)
        for sub in texpr.args:
            type_packages(sub, out)


def render_entity_go(entity: str, fields: FieldList) -> str:
    pkgs: Set[str] = set()
    for f in fields:
        type_packages(f.type, pkgs)

    lines: List[str] = [BOT_MARKER, "package domain", ""]
    if len(pkgs) == 1:
        lines += [f'import "{next(iter(pkgs))}"', ""]
    elif pkgs:
        lines += ["import ("] + [f'\t"{p}"' for p in sorted(pkgs)] + [")", ""]

    name_w = max(len(f.name) for f in fields)
    type_w = max(len(f.type_name) for f in fields)
    lines.append(f"type {entity} struct {{")
    for f in fields:
        lines.append(f"\t{f.name.ljust(name_w)} {f.type_name.ljust(type_w)} {f.tag}")
    lines.append("}")
    return "\n".join(lines) + "\n"
