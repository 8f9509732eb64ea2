"""Compile a ``FormSchema`` into a validator for submitted metadata.

Validation is strict (keys outside the schema are rejected), collects every
field error in one pass, and never raises for bad input: callers get a
``ValidationResult`` whose ``errors`` map field ids (or ``"_"``) to messages.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email

from .schema import BaseField
from .schema import CheckboxField
from .schema import DateField
from .schema import EmailField
from .schema import FormSchema
from .schema import NumberField
from .schema import PhoneField
from .schema import PhotoCountField
from .schema import SelectField
from .schema import SignatureToggleField
from .schema import TextareaField
from .schema import TextField
from .schema import is_finite_number
from .schema import parse_instant
from .schema import parse_schema

NON_FIELD_KEY = "_"
PHONE_MIN_LENGTH = 7

MSG_NOT_OBJECT = "Expected object"
MSG_REQUIRED = "This field is required."
MSG_BLANK = "This field may not be blank."
MSG_NOT_STRING = "Not a valid string."
MSG_NOT_NUMBER = "A valid number is required."
MSG_NOT_INTEGER = "A valid integer is required."
MSG_NOT_BOOLEAN = "Must be a valid boolean."
MSG_PATTERN = "This value does not match the required pattern."
MSG_EMAIL = "Enter a valid email address."
INVALID_SELECTION = "invalid_selection"
INVALID_DATE = "invalid_date"
DATE_TOO_EARLY = "date_too_early"
DATE_TOO_LATE = "date_too_late"

Rule = Callable[[Any], tuple[Any, list[str]]]


@dataclass(frozen=True)
class ValidationResult:
    data: dict[str, Any] | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class Validator:
    rules: Mapping[str, Rule]
    required: frozenset[str]

    def validate(self, data: Any) -> ValidationResult:
        if not isinstance(data, Mapping):
            return ValidationResult(errors={NON_FIELD_KEY: [MSG_NOT_OBJECT]})

        errors: dict[str, list[str]] = {}
        unknown = sorted(str(key) for key in data if key not in self.rules)
        if unknown:
            errors[NON_FIELD_KEY] = [f"Unrecognized key(s): {', '.join(unknown)}"]

        cleaned: dict[str, Any] = {}
        for field_id, rule in self.rules.items():
            if field_id not in data:
                if field_id in self.required:
                    errors[field_id] = [MSG_REQUIRED]
                continue
            value, messages = rule(data[field_id])
            if messages:
                errors[field_id] = messages
            else:
                cleaned[field_id] = value

        if errors:
            return ValidationResult(errors=errors)
        return ValidationResult(data=cleaned)


def compile_schema(schema: FormSchema | Mapping) -> Validator:
    """Build a validator; accepts a parsed schema or a raw schema document."""
    if not isinstance(schema, FormSchema):
        schema = parse_schema(schema)
    return Validator(
        rules={spec.id: _rule_for(spec) for spec in schema.fields},
        required=frozenset(spec.id for spec in schema.fields if spec.required),
    )


def _rule_for(spec: BaseField) -> Rule:
    match spec:
        case TextField():
            pattern = re.compile(spec.pattern) if spec.pattern is not None else None
            return _string_rule(spec.required, spec.max_length, pattern)
        case TextareaField():
            return _string_rule(spec.required, spec.max_length, None)
        case NumberField():
            return _number_rule(spec.min, spec.max, integer=False)
        case PhotoCountField():
            return _number_rule(spec.min, spec.max, integer=True)
        case SelectField():
            return _select_rule(frozenset(spec.values))
        case CheckboxField() | SignatureToggleField():
            return _boolean_rule
        case DateField():
            return _date_rule(spec.min_date, spec.max_date)
        case PhoneField():
            return _phone_rule(spec.required)
        case EmailField():
            return _email_rule
    msg = f"No validation rule for field type {spec.type!r}"
    raise TypeError(msg)


def _string_rule(required: bool, max_length: int | None, pattern) -> Rule:  # noqa: FBT001
    def rule(value):
        if not isinstance(value, str):
            return value, [MSG_NOT_STRING]
        messages = []
        if required and value == "":
            messages.append(MSG_BLANK)
        if max_length is not None and len(value) > max_length:
            messages.append(
                f"Ensure this field has no more than {max_length} characters.",
            )
        if pattern is not None and pattern.search(value) is None:
            messages.append(MSG_PATTERN)
        return value, messages

    return rule


def _number_rule(minimum, maximum, *, integer: bool) -> Rule:
    def rule(value):
        if not is_finite_number(value):
            return value, [MSG_NOT_INTEGER if integer else MSG_NOT_NUMBER]
        if integer:
            if isinstance(value, float):
                if not value.is_integer():
                    return value, [MSG_NOT_INTEGER]
                value = int(value)
        messages = []
        if minimum is not None and value < minimum:
            messages.append(
                f"Ensure this value is greater than or equal to {minimum}.",
            )
        if maximum is not None and value > maximum:
            messages.append(f"Ensure this value is less than or equal to {maximum}.")
        return value, messages

    return rule


def _select_rule(allowed: frozenset[str]) -> Rule:
    def rule(value):
        if isinstance(value, str) and value in allowed:
            return value, []
        return value, [INVALID_SELECTION]

    return rule


def _boolean_rule(value):
    if isinstance(value, bool):
        return value, []
    return value, [MSG_NOT_BOOLEAN]


def _date_rule(min_date: str | None, max_date: str | None) -> Rule:
    lower = parse_instant(min_date) if min_date else None
    upper = parse_instant(max_date) if max_date else None

    def rule(value):
        instant = parse_instant(value) if isinstance(value, str) else None
        if instant is None:
            return value, [INVALID_DATE]
        if lower is not None and instant < lower:
            return value, [DATE_TOO_EARLY]
        if upper is not None and instant > upper:
            return value, [DATE_TOO_LATE]
        return value, []

    return rule


def _phone_rule(required: bool) -> Rule:  # noqa: FBT001
    def rule(value):
        if not isinstance(value, str):
            return value, [MSG_NOT_STRING]
        if required and len(value) < PHONE_MIN_LENGTH:
            return value, [
                f"Ensure this field has at least {PHONE_MIN_LENGTH} characters.",
            ]
        return value, []

    return rule


def _email_rule(value):
    if not isinstance(value, str):
        return value, [MSG_NOT_STRING]
    try:
        validate_email(value)
    except DjangoValidationError:
        return value, [MSG_EMAIL]
    return value, []
