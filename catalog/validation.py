"""
Form binding and guard utilities shared by the catalog services and handlers.

Field problems are accumulated in a ValidationContext so that every invalid
field is reported in one pass. Existence, ownership and request-integrity
checks return a GuardResult instead of raising.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError, create_model

ModelT = TypeVar("ModelT", bound=BaseModel)
EnumT = TypeVar("EnumT", bound=Enum)

_UNCHECKED_VALUES = {"", "off", "false", "0"}


class ValidationContext:
    """
    Mutable bag of field errors for one submitted form.

    Errors are keyed by field name. The first message recorded for a field
    wins, so structural binding messages are not hidden by later checks.
    """

    def __init__(self):
        self.errors: Dict[str, str] = {}
        self.has_binding_errors = False

    def add_error(self, field: str, message: str) -> None:
        self.errors.setdefault(field, message)

    def merge_binding_errors(self, error: ValidationError) -> bool:
        """
        Merge pydantic validation errors into the context.

        Args:
            error: Error raised while binding the form model

        Returns:
            True if binding produced errors
        """
        for item in error.errors():
            field = ".".join(str(part) for part in item["loc"]) or "form"
            self.add_error(field, item["msg"])
            self.has_binding_errors = True
        return self.has_binding_errors

    @property
    def is_valid(self) -> bool:
        return not self.errors


class GuardFailure(str, Enum):
    """Why a guard stopped a request."""
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"
    FORBIDDEN = "forbidden"


class GuardResult(BaseModel):
    """Outcome of an existence, integrity or authorization check."""
    ok: bool = True
    failure: Optional[GuardFailure] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "GuardResult":
        return cls()

    @classmethod
    def fail(cls, failure: GuardFailure, reason: str) -> "GuardResult":
        return cls(ok=False, failure=failure, reason=reason)

    def __bool__(self) -> bool:
        return self.ok


def _partial_form_model(model_cls: Type[ModelT], unset_fields: Set[str]) -> Type[BaseModel]:
    """Subclass of a form model in which the given fields default to None."""
    overrides = {
        name: (Optional[model_cls.model_fields[name].annotation], None)
        for name in unset_fields
    }
    return create_model(f"Partial{model_cls.__name__}", __base__=model_cls, **overrides)


def bind_form(model_cls: Type[ModelT], data: Mapping[str, Any], context: ValidationContext) -> ModelT:
    """
    Bind a raw form mapping to a form model.

    Structural errors are merged into the context instead of raised. The
    returned model always exists: fields that failed to bind are left unset
    (None) and every other field carries its validated value, exactly as it
    would after a clean bind.

    Args:
        model_cls: Pydantic form model
        data: Raw string-keyed form values
        context: Validation context receiving binding errors

    Returns:
        Bound (or partially bound) model instance
    """
    values = {name: data[name] for name in model_cls.model_fields if name in data}
    try:
        return model_cls(**values)
    except ValidationError as e:
        context.merge_binding_errors(e)
        invalid = {item["loc"][0] for item in e.errors() if item["loc"]}
        bound = {name: value for name, value in values.items() if name not in invalid}
        unset = set(model_cls.model_fields) - set(bound)
        partial = _partial_form_model(model_cls, unset)(**bound)
        return model_cls.model_construct(**partial.dict())


def selected_enum_members(form: Mapping[str, Any], enum_cls: Type[EnumT]) -> Set[EnumT]:
    """
    Map checkbox-style form entries onto enum members.

    A key naming a member (case-insensitive) selects it unless its value
    reads as unchecked ("", "off", "false", "0"). Other keys are ignored.
    """
    selected = set()
    for key in form.keys():
        name = str(key).upper()
        if name not in enum_cls.__members__:
            continue
        value = form.get(key)
        if isinstance(value, str) and value.strip().lower() in _UNCHECKED_VALUES:
            continue
        selected.add(enum_cls[name])
    return selected


def ensure_exists(entity: Optional[Any], entity_name: str, entity_id: Any) -> GuardResult:
    """Check that a path-referenced entity resolved."""
    if entity is None:
        return GuardResult.fail(
            GuardFailure.NOT_FOUND,
            f"{entity_name} with ID '{entity_id}' not found"
        )
    return GuardResult.success()
