from __future__ import annotations

import json

import pytest

from order_desk.config import ConfigurationError, load_configuration, load_settings, settings_from_mapping
from order_desk.courier.client import DEFAULT_BASE_URL
from order_desk.factory import build_coordinator, build_store
from order_desk.models import DeliveryRegion
from order_desk.storage import InMemoryStore, JsonFileStore


def test_load_settings_from_yaml_resolves_storage_path(tmp_path) -> None:
    config_path = tmp_path / "desk.yaml"
    config_path.write_text(
        "\n".join(
            [
                "storage:",
                "  path: data/desk.json",
                "courier:",
                "  api_key: key",
                "  secret_key: secret",
                "  rate_limit_per_minute: 30",
                "dispatch:",
                "  allow_simulated: false",
                "  concurrent: true",
                "  max_workers: 4",
                "delivery_charges:",
                "  outside: 150",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(config_path)

    assert settings.storage_path == tmp_path.resolve() / "data" / "desk.json"
    assert settings.courier.api_key == "key"
    assert settings.courier.base_url == DEFAULT_BASE_URL
    assert settings.courier.rate_limit_per_minute == 30.0
    assert settings.dispatch.allow_simulated is False
    assert settings.dispatch.max_workers == 4
    assert settings.delivery_charges == {DeliveryRegion.INSIDE: 70.0, DeliveryRegion.OUTSIDE: 150.0}


def test_load_settings_without_path_uses_defaults() -> None:
    settings = load_settings(None)

    assert settings.storage_path is None
    assert settings.dispatch.allow_simulated is True
    assert isinstance(build_store(settings), InMemoryStore)


def test_factory_builds_file_store_and_coordinator(tmp_path) -> None:
    config_path = tmp_path / "desk.json"
    config_path.write_text(json.dumps({"storage": {"path": "desk-data.json"}}), encoding="utf-8")
    settings = load_settings(config_path)

    store = build_store(settings)
    coordinator = build_coordinator(settings, store)

    assert isinstance(store, JsonFileStore)
    assert store.path.name == "desk-data.json"
    assert coordinator.allow_simulated_dispatch is True


@pytest.mark.parametrize(
    ("name", "contents"),
    [
        ("desk.toml", "x = 1"),
        ("desk.json", "{not json"),
        ("desk.yaml", "- just\n- a list\n"),
    ],
)
def test_load_configuration_rejects_bad_files(tmp_path, name, contents) -> None:
    path = tmp_path / name
    path.write_text(contents, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_configuration(path)


def test_missing_configuration_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "config",
    [
        {"delivery_charges": {"moon": 500}},
        {"delivery_charges": {"inside": ""}},
        {"courier": {"timeout_seconds": "soon"}},
        {"courier": ["not", "a", "mapping"]},
        {"dispatch": {"allow_simulated": "maybe"}},
        {"dispatch": {"concurrent": 2}},
        {"dispatch": {"max_workers": 0}},
        {"dispatch": {"max_workers": -4}},
    ],
)
def test_invalid_values_raise_configuration_error(tmp_path, config) -> None:
    path = tmp_path / "desk.json"
    path.write_text(json.dumps(config), encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings(path)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("false", False), ("FALSE", False), ("no", False), ("0", False), ("true", True), ("On", True), (True, True)],
)
def test_dispatch_flags_parse_strings_strictly(raw, expected) -> None:
    settings = settings_from_mapping({"dispatch": {"allow_simulated": raw, "concurrent": raw}})

    assert settings.dispatch.allow_simulated is expected
    assert settings.dispatch.concurrent is expected
