"""Persisted form schema documents.

A template stores its form as JSON::

    {"version": 1, "fields": [{"id", "type", "label", "required"?, "helpText"?, ...}]}

``parse_schema`` turns that document into a ``FormSchema`` whose fields are
one frozen dataclass per field kind, each carrying only its own constraints.
Unknown extra keys on a field are ignored so older readers keep working with
documents written by newer editors; an unknown ``version`` or ``type`` is an
error.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from typing import Any
from typing import ClassVar

from django.utils.dateparse import parse_date
from django.utils.dateparse import parse_datetime

SCHEMA_VERSION = 1


class SchemaError(ValueError):
    """The stored schema document is not a valid version 1 form schema."""


def parse_instant(value: str) -> datetime | None:
    """Parse an ISO calendar date or datetime into an aware UTC datetime.

    Bare dates mean midnight UTC and naive datetimes are read as UTC.
    Returns None for anything unparseable.
    """
    try:
        parsed = parse_datetime(value)
        if parsed is None:
            day = parse_date(value)
            if day is None:
                return None
            parsed = datetime(day.year, day.month, day.day)  # noqa: DTZ001
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str


@dataclass(frozen=True)
class BaseField:
    type: ClassVar[str] = ""

    id: str
    label: str
    required: bool = False
    help_text: str | None = None

    def constraints(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"id": self.id, "type": self.type, "label": self.label}
        if self.required:
            doc["required"] = True
        if self.help_text is not None:
            doc["helpText"] = self.help_text
        doc.update({k: v for k, v in self.constraints().items() if v is not None})
        return doc


@dataclass(frozen=True)
class TextField(BaseField):
    type: ClassVar[str] = "text"

    max_length: int | None = None
    pattern: str | None = None
    placeholder: str | None = None

    def constraints(self) -> dict[str, Any]:
        return {
            "maxLength": self.max_length,
            "pattern": self.pattern,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class TextareaField(BaseField):
    type: ClassVar[str] = "textarea"

    max_length: int | None = None
    rows: int | None = None

    def constraints(self) -> dict[str, Any]:
        return {"maxLength": self.max_length, "rows": self.rows}


@dataclass(frozen=True)
class NumberField(BaseField):
    type: ClassVar[str] = "number"

    min: float | None = None
    max: float | None = None
    step: float | None = None
    unit: str | None = None

    def constraints(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "step": self.step, "unit": self.unit}


@dataclass(frozen=True)
class SelectField(BaseField):
    type: ClassVar[str] = "select"

    options: tuple[SelectOption, ...] = ()

    @property
    def values(self) -> tuple[str, ...]:
        return tuple(option.value for option in self.options)

    def constraints(self) -> dict[str, Any]:
        return {
            "options": [{"value": o.value, "label": o.label} for o in self.options],
        }


@dataclass(frozen=True)
class CheckboxField(BaseField):
    type: ClassVar[str] = "checkbox"


@dataclass(frozen=True)
class DateField(BaseField):
    type: ClassVar[str] = "date"

    min_date: str | None = None
    max_date: str | None = None

    def constraints(self) -> dict[str, Any]:
        return {"minDate": self.min_date, "maxDate": self.max_date}


@dataclass(frozen=True)
class PhoneField(BaseField):
    type: ClassVar[str] = "phone"


@dataclass(frozen=True)
class EmailField(BaseField):
    type: ClassVar[str] = "email"


@dataclass(frozen=True)
class PhotoCountField(BaseField):
    type: ClassVar[str] = "photo-count"

    min: int | None = None
    max: int | None = None

    def constraints(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class SignatureToggleField(BaseField):
    type: ClassVar[str] = "signature-toggle"


FieldSpec = (
    TextField
    | TextareaField
    | NumberField
    | SelectField
    | CheckboxField
    | DateField
    | PhoneField
    | EmailField
    | PhotoCountField
    | SignatureToggleField
)


@dataclass(frozen=True)
class FormSchema:
    fields: tuple[FieldSpec, ...] = ()
    version: int = SCHEMA_VERSION

    @property
    def field_ids(self) -> frozenset[str]:
        return frozenset(f.id for f in self.fields)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "fields": [f.to_dict() for f in self.fields]}


# -- document parsing ---------------------------------------------------------


def is_finite_number(value: Any) -> bool:
    """True for JSON numbers that fit a double; bools are not numbers."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # An int literal too long for a float.
        return False


def _is_int(value: Any) -> bool:
    return is_finite_number(value) and float(value).is_integer()


def _opt_str(raw: dict, key: str, where: str) -> str | None:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        msg = f"{where}.{key} must be a string"
        raise SchemaError(msg)
    return value


def _opt_number(raw: dict, key: str, where: str, *, positive: bool = False):
    value = raw.get(key)
    if value is None:
        return None
    if not is_finite_number(value) or (positive and value <= 0):
        kind = "a positive number" if positive else "a number"
        msg = f"{where}.{key} must be {kind}"
        raise SchemaError(msg)
    return value


def _opt_int(raw: dict, key: str, where: str, *, minimum: int | None = None):
    value = raw.get(key)
    if value is None:
        return None
    if not _is_int(value) or (minimum is not None and value < minimum):
        bound = "" if minimum is None else f" >= {minimum}"
        msg = f"{where}.{key} must be an integer{bound}"
        raise SchemaError(msg)
    return int(value)


def _opt_date(raw: dict, key: str, where: str) -> str | None:
    value = _opt_str(raw, key, where)
    if value is not None and parse_instant(value) is None:
        msg = f"{where}.{key} must be an ISO date"
        raise SchemaError(msg)
    return value


def _base_kwargs(raw: dict, where: str) -> dict[str, Any]:
    field_id = raw.get("id")
    if not isinstance(field_id, str) or not field_id:
        msg = f"{where}.id must be a non-empty string"
        raise SchemaError(msg)
    label = raw.get("label")
    if not isinstance(label, str) or not label:
        msg = f"{where}.label must be a non-empty string"
        raise SchemaError(msg)
    required = raw.get("required", False)
    if not isinstance(required, bool):
        msg = f"{where}.required must be a boolean"
        raise SchemaError(msg)
    return {
        "id": field_id,
        "label": label,
        "required": required,
        "help_text": _opt_str(raw, "helpText", where),
    }


def _parse_text(raw: dict, where: str) -> TextField:
    pattern = _opt_str(raw, "pattern", where)
    if pattern is not None:
        try:
            re.compile(pattern)
        except re.error as exc:
            msg = f"{where}.pattern is not a valid regular expression: {exc}"
            raise SchemaError(msg) from exc
    return TextField(
        **_base_kwargs(raw, where),
        max_length=_opt_int(raw, "maxLength", where, minimum=1),
        pattern=pattern,
        placeholder=_opt_str(raw, "placeholder", where),
    )


def _parse_textarea(raw: dict, where: str) -> TextareaField:
    return TextareaField(
        **_base_kwargs(raw, where),
        max_length=_opt_int(raw, "maxLength", where, minimum=1),
        rows=_opt_int(raw, "rows", where, minimum=1),
    )


def _parse_number(raw: dict, where: str) -> NumberField:
    return NumberField(
        **_base_kwargs(raw, where),
        min=_opt_number(raw, "min", where),
        max=_opt_number(raw, "max", where),
        step=_opt_number(raw, "step", where, positive=True),
        unit=_opt_str(raw, "unit", where),
    )


def _parse_select(raw: dict, where: str) -> SelectField:
    options = raw.get("options")
    if not isinstance(options, list) or not options:
        msg = f"{where}.options must be a non-empty array"
        raise SchemaError(msg)
    parsed: list[SelectOption] = []
    for index, option in enumerate(options):
        at = f"{where}.options[{index}]"
        if not isinstance(option, dict):
            msg = f"{at} must be an object"
            raise SchemaError(msg)
        value, label = option.get("value"), option.get("label")
        if not isinstance(value, str) or not value:
            msg = f"{at}.value must be a non-empty string"
            raise SchemaError(msg)
        if not isinstance(label, str) or not label:
            msg = f"{at}.label must be a non-empty string"
            raise SchemaError(msg)
        parsed.append(SelectOption(value=value, label=label))
    return SelectField(**_base_kwargs(raw, where), options=tuple(parsed))


def _parse_date_field(raw: dict, where: str) -> DateField:
    return DateField(
        **_base_kwargs(raw, where),
        min_date=_opt_date(raw, "minDate", where),
        max_date=_opt_date(raw, "maxDate", where),
    )


def _parse_photo_count(raw: dict, where: str) -> PhotoCountField:
    return PhotoCountField(
        **_base_kwargs(raw, where),
        min=_opt_int(raw, "min", where, minimum=0),
        max=_opt_int(raw, "max", where, minimum=1),
    )


def _plain(cls):
    def parse(raw: dict, where: str):
        return cls(**_base_kwargs(raw, where))

    return parse


_PARSERS = {
    TextField.type: _parse_text,
    TextareaField.type: _parse_textarea,
    NumberField.type: _parse_number,
    SelectField.type: _parse_select,
    CheckboxField.type: _plain(CheckboxField),
    DateField.type: _parse_date_field,
    PhoneField.type: _plain(PhoneField),
    EmailField.type: _plain(EmailField),
    PhotoCountField.type: _parse_photo_count,
    SignatureToggleField.type: _plain(SignatureToggleField),
}

FIELD_TYPES = frozenset(_PARSERS)


def parse_field(raw: Any, where: str = "field") -> FieldSpec:
    if not isinstance(raw, dict):
        msg = f"{where} must be an object"
        raise SchemaError(msg)
    field_type = raw.get("type")
    parser = _PARSERS.get(field_type) if isinstance(field_type, str) else None
    if parser is None:
        msg = f"Unsupported field type: {field_type}"
        raise SchemaError(msg)
    return parser(raw, where)


def parse_schema(document: Any) -> FormSchema:
    """Parse a persisted schema document, raising ``SchemaError`` if invalid."""
    if isinstance(document, FormSchema):
        return document
    if not isinstance(document, dict):
        msg = "schema must be an object"
        raise SchemaError(msg)
    version = document.get("version")
    if type(version) is not int or version != SCHEMA_VERSION:
        msg = f"Unsupported schema version: {version!r}"
        raise SchemaError(msg)
    raw_fields = document.get("fields")
    if not isinstance(raw_fields, list):
        msg = "schema.fields must be an array"
        raise SchemaError(msg)

    fields: list[FieldSpec] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_fields):
        spec = parse_field(raw, f"fields[{index}]")
        if spec.id in seen:
            msg = f"Duplicate field id: {spec.id}"
            raise SchemaError(msg)
        seen.add(spec.id)
        fields.append(spec)
    return FormSchema(fields=tuple(fields), version=SCHEMA_VERSION)
