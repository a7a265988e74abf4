from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    EMPTY_TYPE = "EmptyType"
    SYNTAX_ERROR = "SyntaxError"
    INVALID_ARRAY_SIZE = "InvalidArraySize"
    NON_COMPARABLE_MAP_KEY = "NonComparableMapKey"
    INVALID_FIELD_SYNTAX = "InvalidFieldSyntax"
    DUPLICATE_FIELD = "DuplicateField"
    RESERVED_NAME = "ReservedName"
    INVALID_FIELD_TYPE = "InvalidFieldType"
    INVALID_ENTITY_NAME = "InvalidEntityName"
    TARGET_NOT_FOUND = "TargetNotFound"
    NO_INSERTION_POINT = "NoInsertionPoint"
    READ_FAILURE = "ReadFailure"
    WRITE_FAILURE = "WriteFailure"


class GocrudError(Exception):
    """Base error. ``kind`` tells callers what went wrong without parsing messages."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class TypeValidationError(GocrudError):
    def __init__(self, kind: ErrorKind, token: str, detail: str = "") -> None:
        self.token = token
        super().__init__(kind, detail or f"invalid type '{token}'")


class FieldSpecError(GocrudError):
    @property
    def cause_kind(self) -> Optional[ErrorKind]:
        cause = self.__cause__
        return cause.kind if isinstance(cause, GocrudError) else None


class PatchError(GocrudError):
    def __init__(self, kind: ErrorKind, detail: str = "", path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(kind, detail)

    @property
    def recoverable(self) -> bool:
        return self.kind in (ErrorKind.TARGET_NOT_FOUND, ErrorKind.NO_INSERTION_POINT)
