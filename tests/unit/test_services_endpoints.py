"""Unit tests for gateway.services.endpoints: the on-disk endpoint registry."""

import json
from unittest.mock import patch

import pytest

from gateway.db import files
from gateway.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from gateway.services.endpoints import HANDLER_STUB, EndpointRegistry, normalize_slug


@pytest.fixture
def registry(tmp_path):
    return EndpointRegistry(tmp_path / "routes", reserved_names={"admin", "server-metrics"})


def _create(registry, name="weather", **overrides):
    fields = {"title": "Weather", "method": "get", "path": "/api/weather"}
    fields.update(overrides)
    return registry.create(name, **fields)


class TestNormalizeSlug:
    @pytest.mark.parametrize(
        "raw, slug",
        [
            ("My Endpoint!!", "my-endpoint"),
            ("  Spaced   Out  ", "spaced-out"),
            ("a--b", "a-b"),
            ("Weather_2", "weather2"),
            ("already-ok", "already-ok"),
        ],
    )
    def test_strips_disallowed_characters(self, raw, slug):
        assert normalize_slug(raw) == slug

    @pytest.mark.parametrize("raw", ["@@@", "", "   ", "../", "---"])
    def test_empty_result_is_invalid(self, raw):
        with pytest.raises(ValidationError):
            normalize_slug(raw)


class TestCreate:
    def test_writes_definition_and_stub(self, registry):
        slug = _create(registry, name="My-Weather!!", description="Forecasts")

        assert slug == "my-weather"
        definition = json.loads(registry.definition_path(slug).read_text())
        assert definition == {
            "title": "Weather",
            "description": "Forecasts",
            "method": "GET",
            "path": "/api/weather",
            "parameters": [],
            "curl": "",
            "response": {"success": True},
            "hidden": False,
        }
        assert registry.handler_path(slug).read_text() == HANDLER_STUB

    def test_empty_slug_rejected(self, registry):
        with pytest.raises(ValidationError):
            _create(registry, name="@@@")
        assert not registry.routes_dir.exists() or list(registry.routes_dir.iterdir()) == []

    def test_duplicate_rejected(self, registry):
        _create(registry, name="weather")
        with pytest.raises(ConflictError):
            _create(registry, name="WEATHER")

    def test_conflicts_with_orphan_handler(self, registry):
        registry.routes_dir.mkdir(parents=True)
        registry.handler_path("weather").write_text("# orphan\n")

        with pytest.raises(ConflictError):
            _create(registry, name="weather")

    def test_reserved_name_rejected(self, registry):
        with pytest.raises(ConflictError, match="reserved"):
            _create(registry, name="Server-Metrics")

    def test_failed_stub_write_removes_definition(self, registry):
        real_write_text = files.write_text

        def fail_on_handler(path, text):
            if path.suffix == ".py":
                raise OSError("disk full")
            real_write_text(path, text)

        with patch("gateway.db.files.write_text", side_effect=fail_on_handler):
            with pytest.raises(PersistenceError):
                _create(registry, name="weather")

        assert not registry.definition_path("weather").exists()
        assert _create(registry, name="weather") == "weather"


class TestList:
    def test_reports_hidden_and_malformed(self, registry):
        _create(registry, name="alpha")
        _create(registry, name="beta")
        registry.toggle_visibility("beta")
        registry.definition_path("broken").write_text("{nope")

        listing = {s.name: s for s in registry.list()}

        assert listing["alpha"].hidden is False
        assert listing["beta"].hidden is True
        assert listing["broken"].hidden is False
        assert listing["broken"].error == "Invalid JSON"

    def test_missing_directory_is_empty(self, registry):
        assert registry.list() == []


class TestToggleVisibility:
    def test_double_toggle_restores_state(self, registry):
        _create(registry)

        assert registry.toggle_visibility("weather") is True
        assert [s.hidden for s in registry.list()] == [True]
        assert registry.toggle_visibility("weather") is False
        assert [s.hidden for s in registry.list()] == [False]

    def test_unknown_slug(self, registry):
        with pytest.raises(NotFoundError):
            registry.toggle_visibility("nope")


class TestDelete:
    def test_removes_both_files(self, registry):
        _create(registry)

        registry.delete("weather")

        assert not registry.definition_path("weather").exists()
        assert not registry.handler_path("weather").exists()

    def test_removes_whichever_exists(self, registry):
        _create(registry)
        registry.handler_path("weather").unlink()

        assert registry.delete("weather") == "weather"

    def test_not_found(self, registry):
        with pytest.raises(NotFoundError):
            registry.delete("weather")


class TestScripts:
    def test_round_trip(self, registry):
        _create(registry)

        registry.save_script("weather", "def handle(request):\n    return {'ok': True}\n")

        assert "return {'ok': True}" in registry.get_script("weather")

    def test_missing_handler(self, registry):
        with pytest.raises(NotFoundError):
            registry.get_script("weather")
        with pytest.raises(NotFoundError):
            registry.save_script("weather", "x = 1\n")


class TestConfig:
    def test_save_replaces_definition(self, registry):
        _create(registry)

        registry.save_config("weather", '{"title": "New", "method": "POST", "path": "/x"}')

        assert registry.get_config("weather") == {"title": "New", "method": "POST", "path": "/x"}

    def test_invalid_json_leaves_file_untouched(self, registry):
        _create(registry)
        before = registry.definition_path("weather").read_bytes()

        with pytest.raises(ValidationError):
            registry.save_config("weather", "{not json")

        assert registry.definition_path("weather").read_bytes() == before

    def test_non_object_rejected(self, registry):
        _create(registry)
        with pytest.raises(ValidationError):
            registry.save_config("weather", "[1, 2]")

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_json_constants_rejected(self, registry, constant):
        _create(registry)
        before = registry.definition_path("weather").read_bytes()

        with pytest.raises(ValidationError):
            registry.save_config("weather", f'{{"title": {constant}}}')

        assert registry.definition_path("weather").read_bytes() == before

    def test_invalid_json_checked_before_existence(self, registry):
        with pytest.raises(ValidationError):
            registry.save_config("weather", "{not json")

    def test_missing_definition(self, registry):
        with pytest.raises(NotFoundError):
            registry.get_config("weather")
        with pytest.raises(NotFoundError):
            registry.save_config("weather", "{}")

    def test_corrupt_definition_is_persistence_error(self, registry):
        _create(registry)
        registry.definition_path("weather").write_text("{broken")

        with pytest.raises(PersistenceError):
            registry.get_config("weather")
