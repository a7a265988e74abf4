from __future__ import annotations

import dataclasses

import pytest

from gocrud.errors import ErrorKind, FieldSpecError
from gocrud.fields import gorm_tag, is_valid_field_spec, parse_fields, validate_entity_name
from gocrud.typeexpr import Basic, Function, Map


def test_parse_basic_fields_prepends_id() -> None:
    fields = parse_fields("name:string,age:int,active:bool")

    assert fields.names() == ["ID", "Name", "Age", "Active"]
    assert fields[0].tag == '`json:"id" gorm:"primaryKey;autoIncrement"`'
    assert fields[1].tag == '`json:"name" gorm:"type:varchar(255);not null"`'
    assert fields[2].tag == '`json:"age" gorm:"type:integer;not null;default:0"`'
    assert fields[3].type == Basic("bool")
    assert len(fields.user_fields()) == 3


def test_name_normalization_keeps_camel_case() -> None:
    fields = parse_fields("createdAt:time.Time")
    assert fields[1].name == "CreatedAt"
    assert fields[1].json_name == "createdat"
    assert 'gorm:"not null"' in fields[1].tag


def test_email_gets_unique_index() -> None:
    fields = parse_fields("email:string")
    assert "uniqueIndex" in fields[1].tag
    assert gorm_tag("Description", "string") == "type:text"
    assert gorm_tag("Price", "float64") == "type:decimal(10,2);not null;default:0"


def test_commas_inside_types_do_not_split_fields() -> None:
    fields = parse_fields("validator:func(interface{}) error,handler:func(string) (bool, error)")
    assert fields.names() == ["ID", "Validator", "Handler"]
    assert isinstance(fields[2].type, Function)
    assert len(fields[2].type.results) == 2

    fields = parse_fields("meta:map[string]Pair[A,B],tags:[]string")
    assert isinstance(fields[1].type, Map)
    assert fields.names() == ["ID", "Meta", "Tags"]


@pytest.mark.parametrize(
    "spec, kind",
    [
        ("", ErrorKind.INVALID_FIELD_SYNTAX),
        ("name", ErrorKind.INVALID_FIELD_SYNTAX),
        ("name:string:extra", ErrorKind.INVALID_FIELD_SYNTAX),
        ("name:string,", ErrorKind.INVALID_FIELD_SYNTAX),
        ("1name:string", ErrorKind.INVALID_FIELD_SYNTAX),
        ("na-me:string", ErrorKind.INVALID_FIELD_SYNTAX),
        (":string", ErrorKind.INVALID_FIELD_SYNTAX),
        ("name:string,Name:int", ErrorKind.DUPLICATE_FIELD),
        ("name:string,name:int", ErrorKind.DUPLICATE_FIELD),
        ("for:string", ErrorKind.RESERVED_NAME),
        ("id:int", ErrorKind.RESERVED_NAME),
        ("Error:string", ErrorKind.RESERVED_NAME),
        ("name:", ErrorKind.INVALID_FIELD_TYPE),
        ("data:map[string", ErrorKind.INVALID_FIELD_TYPE),
    ],
)
def test_invalid_specs(spec: str, kind: ErrorKind) -> None:
    with pytest.raises(FieldSpecError) as exc_info:
        parse_fields(spec)
    assert exc_info.value.kind == kind


def test_type_errors_keep_their_cause() -> None:
    with pytest.raises(FieldSpecError) as exc_info:
        parse_fields("invalid:map[[]string]int")
    err = exc_info.value
    assert err.kind == ErrorKind.INVALID_FIELD_TYPE
    assert err.cause_kind == ErrorKind.NON_COMPARABLE_MAP_KEY
    assert "map[K]V" in str(err)


def test_field_list_is_immutable() -> None:
    fields = parse_fields("name:string")
    with pytest.raises(dataclasses.FrozenInstanceError):
        fields.fields = ()  # type: ignore[misc]


@pytest.mark.parametrize("name", ["User", "OrderItem", "X1"])
def test_valid_entity_names(name: str) -> None:
    validate_entity_name(name)


@pytest.mark.parametrize("name", ["", "user", "Order_Item", "Order-Item", "A" * 51])
def test_invalid_entity_names(name: str) -> None:
    with pytest.raises(FieldSpecError) as exc_info:
        validate_entity_name(name)
    assert exc_info.value.kind == ErrorKind.INVALID_ENTITY_NAME


def test_is_valid_field_spec() -> None:
    assert is_valid_field_spec("title:string,tags:[]string,owner:*User")
    assert not is_valid_field_spec("title:string,title:string")
