import math

import pytest

from herbst.config_schema import HerbstConfig, default_config, normalize, validate
from herbst.display import LEGACY_SECTION_TITLE, merge_services
from herbst.errors import ConfigValidationError


def test_v1_payload_gets_defaults_for_later_sections(v1_payload):
    config = validate(v1_payload)

    assert config.title == "herbst – homelab"
    assert config.weather.enabled is False
    assert config.weather.api_key == ""
    assert config.docker.enabled is False
    assert config.system.enabled is False
    assert config.sections == []
    assert config.ui.clock is None
    assert config.services[0].online_badge is True
    assert config.theme_vars["color-bg"] == "#0b1120"


def test_minimal_payload():
    config = validate({"title": "t", "theme": "default"})

    assert config.ui.background is None
    assert config.services == []
    assert config.theme_vars == {}


def test_null_sections_from_older_server_use_defaults():
    config = validate({"title": "t", "theme": "x", "services": None, "themeVars": None, "ui": None})

    assert config.services == []
    assert config.theme_vars == {}


def test_normalize_does_not_mutate_input():
    raw = {"title": "t", "theme": "x", "services": None}
    normalize(raw)
    assert raw["services"] is None


def test_full_payload_camel_case(full_payload):
    config = validate(full_payload)

    assert config.weather.api_key == "secret"
    assert config.docker.socket_path == "/var/run/docker.sock"
    assert config.docker.agents_configured is False
    assert config.system.disk_path == "/mnt/data"
    assert config.sections[0].services[0].name == "Home Assistant"


def test_empty_units_means_metric():
    config = validate({"title": "t", "theme": "x", "weather": {"enabled": False, "units": ""}})
    assert config.weather.units == "metric"


@pytest.mark.parametrize("field", ["title", "theme"])
def test_missing_required_field(v1_payload, field):
    del v1_payload[field]

    with pytest.raises(ConfigValidationError) as exc_info:
        validate(v1_payload)

    assert exc_info.value.path == field


def test_wrong_primitive_kind(v1_payload):
    v1_payload["title"] = 42

    with pytest.raises(ConfigValidationError) as exc_info:
        validate(v1_payload)

    assert exc_info.value.path == "title"


def test_service_without_url_names_path(v1_payload):
    del v1_payload["services"][1]["url"]

    with pytest.raises(ConfigValidationError) as exc_info:
        validate(v1_payload)

    assert exc_info.value.path == "services.1.url"


def test_duplicate_service_in_section_rejected():
    raw = {
        "title": "t",
        "theme": "x",
        "sections": [{"title": "A", "services": [
            {"name": "NAS", "url": "a"},
            {"name": "NAS", "url": "b"},
        ]}],
    }
    with pytest.raises(ConfigValidationError) as exc_info:
        validate(raw)

    assert exc_info.value.path.startswith("sections.0")


def test_invalid_theme_var_name_rejected():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate({"title": "t", "theme": "x", "themeVars": {"bad name;": "red"}})

    assert exc_info.value.path in ("themeVars", "theme_vars")


def test_non_object_payload_rejected():
    with pytest.raises(ConfigValidationError):
        validate(["title"])


def test_weather_location_rules():
    nan = float("nan")
    config = validate({"title": "t", "theme": "x", "weather": {"enabled": True, "location": "", "lat": nan, "lon": nan}})
    assert math.isnan(config.weather.lat)
    assert config.weather.has_valid_location() is False

    assert validate({"title": "t", "theme": "x", "weather": {"location": "London,GB"}}).weather.has_valid_location()
    assert validate({"title": "t", "theme": "x", "weather": {"lat": 52.5, "lon": 13.4}}).weather.has_valid_location()
    assert not validate({"title": "t", "theme": "x", "weather": {"lat": 95, "lon": 13.4}}).weather.has_valid_location()


def test_config_is_immutable(v1_payload):
    config = validate(v1_payload)
    with pytest.raises(Exception):
        config.title = "changed"


def test_default_config():
    config = default_config()

    assert isinstance(config, HerbstConfig)
    assert config.ui.background is None
    assert not config.weather.enabled and not config.docker.enabled and not config.system.enabled
    assert config.services == [] and config.sections == []


# ── Display merge ─────────────────────────────────────

def test_merge_sections_take_precedence(full_payload):
    sections = merge_services(validate(full_payload))

    assert [s.title for s in sections] == ["Home", LEGACY_SECTION_TITLE]
    nas = [svc for s in sections for svc in s.services if svc.name == "NAS"]
    assert len(nas) == 1
    assert nas[0].url == "https://nas2.local"
    assert [svc.name for svc in sections[1].services] == ["Plex"]


def test_merge_without_legacy_services():
    config = validate({"title": "t", "theme": "x", "sections": [{"title": "A", "services": [{"name": "a", "url": "u"}]}]})
    assert [s.title for s in merge_services(config)] == ["A"]


def test_merge_dedupes_legacy_list():
    config = validate({"title": "t", "theme": "x", "services": [
        {"name": "a", "url": "first"},
        {"name": "a", "url": "second"},
    ]})
    sections = merge_services(config)
    assert [svc.url for svc in sections[0].services] == ["first"]
