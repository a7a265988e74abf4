"""gocrud: Go clean-architecture scaffolding core (field types + idempotent source patching)."""

from .errors import ErrorKind, FieldSpecError, GocrudError, PatchError, TypeValidationError
from .fields import Field, FieldList, parse_fields, validate_entity_name
from .hub import FailurePolicy, GocrudHub, IntegrationResult, RegistrationReport, VerificationReport
from .models import InsertionPoint, MutationTarget, PatchStatus, Strategy
from .patcher import StructuralPatcher
from .project import Project, load_project
from .typeexpr import validate_type

__all__ = [
    "ErrorKind",
    "FailurePolicy",
    "Field",
    "FieldList",
    "FieldSpecError",
    "GocrudError",
    "GocrudHub",
    "InsertionPoint",
    "IntegrationResult",
    "MutationTarget",
    "PatchError",
    "PatchStatus",
    "Project",
    "RegistrationReport",
    "Strategy",
    "StructuralPatcher",
    "TypeValidationError",
    "VerificationReport",
    "load_project",
    "parse_fields",
    "validate_entity_name",
    "validate_type",
]
