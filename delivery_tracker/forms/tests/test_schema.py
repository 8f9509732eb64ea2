import pytest

from delivery_tracker.forms.schema import FIELD_TYPES
from delivery_tracker.forms.schema import DateField
from delivery_tracker.forms.schema import SchemaError
from delivery_tracker.forms.schema import SelectField
from delivery_tracker.forms.schema import TextField
from delivery_tracker.forms.schema import parse_instant
from delivery_tracker.forms.schema import parse_schema


def test_parses_every_field_type():
    document = {
        "version": 1,
        "fields": [
            {"id": "ref", "type": "text", "label": "Ref", "maxLength": 10},
            {"id": "notes", "type": "textarea", "label": "Notes", "rows": 3},
            {"id": "weight", "type": "number", "label": "Weight", "unit": "kg"},
            {
                "id": "size",
                "type": "select",
                "label": "Size",
                "options": [{"value": "s", "label": "Small"}],
            },
            {"id": "fragile", "type": "checkbox", "label": "Fragile"},
            {"id": "due", "type": "date", "label": "Due", "minDate": "2024-01-01"},
            {"id": "phone", "type": "phone", "label": "Phone"},
            {"id": "email", "type": "email", "label": "Email"},
            {"id": "photos", "type": "photo-count", "label": "Photos", "max": 5},
            {"id": "signed", "type": "signature-toggle", "label": "Signed"},
        ],
    }
    schema = parse_schema(document)
    assert {f.type for f in schema.fields} == FIELD_TYPES
    assert schema.field_ids == {
        "ref",
        "notes",
        "weight",
        "size",
        "fragile",
        "due",
        "phone",
        "email",
        "photos",
        "signed",
    }
    assert isinstance(schema.fields[0], TextField)
    assert schema.fields[0].max_length == 10
    assert isinstance(schema.fields[3], SelectField)
    assert schema.fields[3].values == ("s",)
    assert isinstance(schema.fields[5], DateField)
    assert schema.fields[5].min_date == "2024-01-01"


@pytest.mark.parametrize("version", [None, 0, 2, "1", True, 1.0])
def test_rejects_unknown_version(version):
    with pytest.raises(SchemaError, match="version"):
        parse_schema({"version": version, "fields": []})


def test_rejects_unknown_field_type():
    with pytest.raises(SchemaError, match="Unsupported field type: barcode"):
        parse_schema(
            {"version": 1, "fields": [{"id": "a", "type": "barcode", "label": "A"}]},
        )


def test_rejects_duplicate_ids():
    field = {"id": "a", "type": "checkbox", "label": "A"}
    with pytest.raises(SchemaError, match="Duplicate field id: a"):
        parse_schema({"version": 1, "fields": [field, dict(field)]})


@pytest.mark.parametrize(
    "field",
    [
        {"id": "", "type": "text", "label": "A"},
        {"id": "a", "type": "text", "label": ""},
        {"id": "a", "type": "text", "label": "A", "required": "yes"},
        {"id": "a", "type": "text", "label": "A", "pattern": "("},
        {"id": "a", "type": "text", "label": "A", "maxLength": 0},
        {"id": "a", "type": "number", "label": "A", "min": "1"},
        {"id": "a", "type": "number", "label": "A", "step": 0},
        {"id": "a", "type": "select", "label": "A", "options": []},
        {"id": "a", "type": "select", "label": "A", "options": [{"value": "x"}]},
        {"id": "a", "type": "date", "label": "A", "maxDate": "tomorrow"},
        {"id": "a", "type": "photo-count", "label": "A", "min": 1.5},
        {"id": "a", "type": "number", "label": "A", "min": 10**400},
        {"id": "a", "type": "photo-count", "label": "A", "max": 10**400},
    ],
)
def test_rejects_malformed_fields(field):
    with pytest.raises(SchemaError):
        parse_schema({"version": 1, "fields": [field]})


def test_rejects_non_object_documents():
    with pytest.raises(SchemaError):
        parse_schema([])
    with pytest.raises(SchemaError, match="fields"):
        parse_schema({"version": 1, "fields": {}})


def test_tolerates_unknown_extra_keys():
    schema = parse_schema(
        {
            "version": 1,
            "fields": [
                {"id": "a", "type": "checkbox", "label": "A", "color": "red"},
            ],
        },
    )
    assert schema.fields[0].to_dict() == {"id": "a", "type": "checkbox", "label": "A"}


def test_to_dict_reparses_to_equal_schema():
    document = {
        "version": 1,
        "fields": [
            {
                "id": "ref",
                "type": "text",
                "label": "Ref",
                "required": True,
                "helpText": "Customer reference",
                "pattern": "^[A-Z]+$",
            },
            {
                "id": "size",
                "type": "select",
                "label": "Size",
                "options": [
                    {"value": "s", "label": "Small"},
                    {"value": "l", "label": "Large"},
                ],
            },
        ],
    }
    schema = parse_schema(document)
    assert schema.to_dict() == document
    assert parse_schema(schema.to_dict()) == schema


def test_parse_instant():
    assert parse_instant("2024-03-01").isoformat() == "2024-03-01T00:00:00+00:00"
    assert (
        parse_instant("2024-03-01T10:00:00+02:00").isoformat()
        == "2024-03-01T10:00:00+02:00"
    )
    assert parse_instant("2024-02-30") is None
    assert parse_instant("soon") is None
