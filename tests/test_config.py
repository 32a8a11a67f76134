"""Configuration registry parsing and serialization."""

import pytest

from mandrill_mail.config import (
    ConfigType,
    INI_MAP,
    KEY_MAP,
    REGISTRY,
    parse_value,
    resolve_entry,
    serialize_value,
)


def test_every_registry_entry_maps_to_a_flask_key():
    assert {e.key for e in REGISTRY} == set(KEY_MAP)


def test_ini_map_points_at_known_settings():
    for registry_key in INI_MAP.values():
        assert registry_key is None or resolve_entry(registry_key) is not None


def test_mandrill_secret_is_marked_secret():
    entry = resolve_entry("services.mandrill.secret")

    assert entry is not None
    assert entry.secret is True


def test_mapping_parses_json_object():
    entry = resolve_entry("services.mandrill.headers")

    assert parse_value(entry, '{"X-Env": "prod", "X-Num": 3}') == {"X-Env": "prod", "X-Num": "3"}


def test_mapping_parses_empty_string_as_empty_dict():
    entry = resolve_entry("services.mandrill.headers")

    assert parse_value(entry, "") == {}


@pytest.mark.parametrize("raw", ["[1, 2]", "not json"])
def test_mapping_rejects_non_objects(raw):
    entry = resolve_entry("services.mandrill.headers")

    with pytest.raises(ValueError):
        parse_value(entry, raw)


def test_mapping_serializes_to_json():
    entry = resolve_entry("services.mandrill.headers")

    assert serialize_value(entry, {"X-Env": "prod"}) == '{"X-Env": "prod"}'
    assert serialize_value(entry, {}) == ""


def test_registry_uses_only_string_and_mapping_types():
    assert {e.type for e in REGISTRY} == {ConfigType.STRING, ConfigType.MAPPING}
    assert set(ConfigType) == {ConfigType.STRING, ConfigType.MAPPING}


def test_string_values_round_through_storage_unchanged():
    entry = resolve_entry("services.mandrill.template_name")

    assert parse_value(entry, "welcome, promo") == "welcome, promo"
    assert serialize_value(entry, "welcome, promo") == "welcome, promo"
