from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Set, Tuple

from .errors import ErrorKind, FieldSpecError, TypeValidationError
from .typeexpr import GO_KEYWORDS, Basic, TypeExpression, split_top_level, validate_type

MIN_FIELD_NAME_LENGTH = 1
MAX_FIELD_NAME_LENGTH = 50
MIN_ENTITY_NAME_LENGTH = 1
MAX_ENTITY_NAME_LENGTH = 50

FIELD_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
ENTITY_NAME_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")

FIELD_GRAMMAR = "name:type[,name:type...] e.g. 'name:string,tags:[]string,meta:map[string]interface{}'"

# Builtins and names that clash with the generated code.
CONFLICT_NAMES = frozenset({
    "id", "string", "int", "bool", "true", "false", "nil", "len", "cap",
    "make", "new", "delete", "copy", "append", "panic", "recover", "print", "println",
    "error",
})

ID_TAG = '`json:"id" gorm:"primaryKey;autoIncrement"`'


@dataclass(frozen=True)
class Field:
    name: str
    type: TypeExpression
    tag: str

    @property
    def type_name(self) -> str:
        return str(self.type)

    @property
    def json_name(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class FieldList:
    """Ordered, immutable field list. The first entry is always the implicit ID."""
    fields: Tuple[Field, ...]

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, idx: int) -> Field:
        return self.fields[idx]

    def names(self) -> List[str]:
        return [f.name for f in self.fields]

    def user_fields(self) -> Tuple[Field, ...]:
        return self.fields[1:]


ID_FIELD = Field(name="ID", type=Basic("uint"), tag=ID_TAG)

# ---------------- names ----------------

def capitalize_first(s: str) -> str:
    return s[:1].upper() + s[1:] if s else s


def validate_field_name(name: str) -> None:
    if not name:
        raise FieldSpecError(ErrorKind.INVALID_FIELD_SYNTAX, "field name cannot be empty")
    if not (MIN_FIELD_NAME_LENGTH <= len(name) <= MAX_FIELD_NAME_LENGTH):
        raise FieldSpecError(
            ErrorKind.INVALID_FIELD_SYNTAX,
            f"field name must be between {MIN_FIELD_NAME_LENGTH} and {MAX_FIELD_NAME_LENGTH} characters: {name}",
        )
    if not name[0].isalpha():
        raise FieldSpecError(ErrorKind.INVALID_FIELD_SYNTAX, f"field name must start with a letter: {name}")
    if not FIELD_NAME_RE.match(name):
        raise FieldSpecError(
            ErrorKind.INVALID_FIELD_SYNTAX,
            f"field name has invalid characters: {name}. Only letters, digits and underscores are allowed",
        )


def validate_reserved_name(name: str) -> None:
    lower = name.lower()
    if lower in GO_KEYWORDS:
        raise FieldSpecError(ErrorKind.RESERVED_NAME, f"'{name}' is a Go reserved word")
    if lower in CONFLICT_NAMES:
        raise FieldSpecError(ErrorKind.RESERVED_NAME, f"'{name}' conflicts with generated code, use a different name")


def validate_entity_name(name: str) -> None:
    if not name:
        raise FieldSpecError(ErrorKind.INVALID_ENTITY_NAME, "entity name cannot be empty")
    if not (MIN_ENTITY_NAME_LENGTH <= len(name) <= MAX_ENTITY_NAME_LENGTH):
        raise FieldSpecError(
            ErrorKind.INVALID_ENTITY_NAME,
            f"entity name must be between {MIN_ENTITY_NAME_LENGTH} and {MAX_ENTITY_NAME_LENGTH} characters: {name}",
        )
    if not name[0].isupper():
        raise FieldSpecError(ErrorKind.INVALID_ENTITY_NAME, f"entity name must start with an upper-case letter: {name}")
    if not ENTITY_NAME_RE.match(name):
        raise FieldSpecError(
            ErrorKind.INVALID_ENTITY_NAME,
            f"entity name has invalid characters: {name}. Only letters and digits are allowed",
        )

# ---------------- tags ----------------

def gorm_tag(field_name: str, type_name: str) -> str:
    if type_name == "string":
        if field_name == "Email":
            return "type:varchar(255);uniqueIndex;not null"
        if field_name in ("Title", "Name"):
            return "type:varchar(255);not null"
        if field_name == "Description":
            return "type:text"
        return "type:varchar(255)"
    if type_name == "int":
        return "type:integer;not null;default:0"
    if type_name == "bool":
        return "type:boolean;not null;default:false"
    if type_name == "float64":
        return "type:decimal(10,2);not null;default:0"
    return "not null"


def struct_tag(field_name: str, type_name: str) -> str:
    return f'`json:"{field_name.lower()}" gorm:"{gorm_tag(field_name, type_name)}"`'

# ---------------- parsing ----------------

def parse_field(definition: str) -> Field:
    """Parse one ``name:type`` pair (no duplicate/reserved checks)."""
    definition = definition.strip()
    if not definition:
        raise FieldSpecError(ErrorKind.INVALID_FIELD_SYNTAX, f"empty field definition. Expected: {FIELD_GRAMMAR}")

    parts = definition.split(":")
    if len(parts) != 2:
        raise FieldSpecError(
            ErrorKind.INVALID_FIELD_SYNTAX,
            f"invalid field syntax '{definition}'. Expected: {FIELD_GRAMMAR}",
        )
    raw_name, raw_type = parts[0].strip(), parts[1].strip()
    validate_field_name(raw_name)

    try:
        texpr = validate_type(raw_type)
    except TypeValidationError as exc:
        raise FieldSpecError(
            ErrorKind.INVALID_FIELD_TYPE,
            f"field '{raw_name}': {exc.detail}. Expected grammar: basic | []T | [N]T | *T | map[K]V | "
            "chan T | func(...) R | pkg.Name | CustomName",
        ) from exc

    name = capitalize_first(raw_name)
    return Field(name=name, type=texpr, tag=struct_tag(name, str(texpr)))


def parse_fields(spec: str) -> FieldList:
    """Parse a full field spec into a FieldList prefixed with ID.

    Segments are split on commas at nesting depth zero, so multi-parameter
    function types and generic instantiations stay in one piece.
    """
    if spec is None or not spec.strip():
        raise FieldSpecError(ErrorKind.INVALID_FIELD_SYNTAX, f"fields cannot be empty. Expected: {FIELD_GRAMMAR}")

    out: List[Field] = [ID_FIELD]
    seen: Set[str] = set()
    for segment in split_top_level(spec):
        field = parse_field(segment)
        key = field.name.lower()
        if key in seen:
            raise FieldSpecError(ErrorKind.DUPLICATE_FIELD, f"duplicate field: {field.name}")
        validate_reserved_name(field.name)
        seen.add(key)
        out.append(field)
    return FieldList(tuple(out))


def is_valid_field_spec(spec: str) -> bool:
    try:
        parse_fields(spec)
    except FieldSpecError:
        return False
    return True
