import pytest

from delivery_tracker.requirements.rules import RulesError
from delivery_tracker.requirements.rules import parse_rules
from delivery_tracker.requirements.rules import rules_hash


def test_defaults_are_filled_in():
    assert parse_rules({}) == {
        "required_stages": ["picked_up", "delivered"],
        "require_photo_at_stages": {},
        "require_signature_at_delivery": False,
        "disallow_status_backwards": True,
        "required_fields": [],
        "label_format": "CODE128",
    }


def test_full_rules_are_kept():
    rules = parse_rules(
        {
            "required_stages": ["picked_up", "in_transit", "delivered"],
            "require_photo_at_stages": {"delivered": 2},
            "required_fields": ["recipient_phone"],
            "geofence": {"lat": 52.5, "lng": 13.4, "radius_meters": 50},
            "label_format": "QR",
            "max_weight_kg": 20,
        },
    )
    assert rules["require_photo_at_stages"] == {"delivered": 2}
    assert rules["geofence"] == {"lat": 52.5, "lng": 13.4, "radius_meters": 50.0}
    assert rules["max_weight_kg"] == 20.0


@pytest.mark.parametrize(
    ("raw", "field"),
    [
        ({"required_stages": ["lost"]}, "required_stages"),
        ({"require_photo_at_stages": {"pending": 1}}, "require_photo_at_stages"),
        ({"require_photo_at_stages": {"delivered": 0}}, "require_photo_at_stages"),
        ({"required_fields": ["recipient_fax"]}, "required_fields"),
        ({"geofence": {"lat": 1, "lng": 2, "radius_meters": 1}}, "geofence"),
        ({"label_format": "EAN13"}, "label_format"),
        ({"max_weight_kg": 0}, "max_weight_kg"),
    ],
)
def test_rejects_invalid_rules(raw, field):
    with pytest.raises(RulesError) as excinfo:
        parse_rules(raw)
    assert field in excinfo.value.errors


def test_rejects_non_object():
    with pytest.raises(RulesError):
        parse_rules(["picked_up"])


def test_hash_ignores_key_order():
    first = parse_rules({"label_format": "QR", "required_fields": ["recipient_name"]})
    second = parse_rules({"required_fields": ["recipient_name"], "label_format": "QR"})
    assert rules_hash(first) == rules_hash(second)
    assert rules_hash(first) != rules_hash(parse_rules({}))
    assert len(rules_hash(first)) == 64
