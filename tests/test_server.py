"""Tests for quickagenda-mcp server."""

import textwrap
from unittest.mock import AsyncMock

import pytest

from quickagenda_mcp import config as config_module
from quickagenda_mcp import server
from quickagenda_mcp.backends.http_backend import HttpEventStore
from quickagenda_mcp.backends.memory import MemoryEventStore
from quickagenda_mcp.config import Settings
from quickagenda_mcp.errors import CollaboratorFailure


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_state():
    """Reset module-level state between tests."""
    server._settings = Settings(share_origin="https://x.test")
    server._store = MemoryEventStore()
    server._reconciler = None
    yield
    server._settings = Settings()
    server._store = None
    server._reconciler = None


async def _publish_bbq(*titles: str) -> dict:
    await server.new_event(name="BBQ", event_date="2025-10-29")
    for title in titles or ("Cake",):
        await server.add_session(title=title, duration=60)
    return await server.publish_event()


# ---------------------------------------------------------------------------
# Config loading tests
# ---------------------------------------------------------------------------

class TestLoadConfig:
    def test_valid_http_config(self, tmp_path, monkeypatch):
        cfg = tmp_path / "quickagenda.yaml"
        cfg.write_text(textwrap.dedent("""\
            backend: http
            api_base_url: "https://agenda.example.com/api"
            share_origin: "https://agenda.example.com/"
            default_start: "08:30"
            timeout: 5
        """))
        monkeypatch.setattr(config_module, "CONFIG_PATH", str(cfg))
        settings = config_module.load_config()
        assert settings.backend == "http"
        assert settings.api_base_url == "https://agenda.example.com/api"
        assert settings.share_origin == "https://agenda.example.com"
        assert settings.default_start == "08:30"
        assert settings.timeout == 5.0

    def test_missing_config_file(self, monkeypatch):
        monkeypatch.setattr(config_module, "CONFIG_PATH", "/nonexistent/config.yaml")
        settings = config_module.load_config()
        assert settings == Settings()

    def test_unknown_backend_raises(self, tmp_path, monkeypatch):
        cfg = tmp_path / "quickagenda.yaml"
        cfg.write_text("backend: postgres\n")
        monkeypatch.setattr(config_module, "CONFIG_PATH", str(cfg))
        with pytest.raises(ValueError, match="Unknown backend"):
            config_module.load_config()

    def test_http_missing_url_raises(self, tmp_path, monkeypatch):
        cfg = tmp_path / "quickagenda.yaml"
        cfg.write_text("backend: http\n")
        monkeypatch.setattr(config_module, "CONFIG_PATH", str(cfg))
        with pytest.raises(ValueError, match="api_base_url"):
            config_module.load_config()

    def test_unquoted_start_time(self, tmp_path, monkeypatch):
        cfg = tmp_path / "quickagenda.yaml"
        cfg.write_text("default_start: 10:30\n")
        monkeypatch.setattr(config_module, "CONFIG_PATH", str(cfg))
        assert config_module.load_config().default_start == "10:30"

    def test_start_time_is_normalized(self, tmp_path, monkeypatch):
        cfg = tmp_path / "quickagenda.yaml"
        cfg.write_text('default_start: "9:00"\n')
        monkeypatch.setattr(config_module, "CONFIG_PATH", str(cfg))
        assert config_module.load_config().default_start == "09:00"

    def test_invalid_start_time_raises(self, tmp_path, monkeypatch):
        cfg = tmp_path / "quickagenda.yaml"
        cfg.write_text('default_start: "noon"\n')
        monkeypatch.setattr(config_module, "CONFIG_PATH", str(cfg))
        with pytest.raises(ValueError, match="default_start"):
            config_module.load_config()

    def test_invalid_timeout_raises(self, tmp_path, monkeypatch):
        cfg = tmp_path / "quickagenda.yaml"
        cfg.write_text("timeout: -1\n")
        monkeypatch.setattr(config_module, "CONFIG_PATH", str(cfg))
        with pytest.raises(ValueError, match="timeout"):
            config_module.load_config()


class TestInitStore:
    def test_memory(self):
        assert isinstance(server._init_store(Settings(backend="memory")), MemoryEventStore)

    def test_http(self):
        store = server._init_store(Settings(backend="http", api_base_url="http://api.test"))
        assert isinstance(store, HttpEventStore)

    def test_unknown(self):
        with pytest.raises(ValueError):
            server._init_store(Settings(backend="postgres"))


# ---------------------------------------------------------------------------
# Tool tests: drafting
# ---------------------------------------------------------------------------

class TestDraftTools:
    async def test_new_event(self):
        result = await server.new_event(name="BBQ", event_date="2025-10-29")
        assert result["state"] == "draft"
        assert result["name"] == "BBQ"
        assert result["event_date"] == "2025-10-29"
        assert result["sessions"] == []

    async def test_new_event_invalid_date(self):
        result = await server.new_event(name="BBQ", event_date="someday")
        assert result["code"] == "VALIDATION_FAILED"

    async def test_set_event_details_time_is_not_a_date(self):
        await server.new_event(name="BBQ")
        result = await server.set_event_details(event_date="10:30")
        assert result["code"] == "VALIDATION_FAILED"
        assert "YYYY-MM-DD" in result["error"]

    async def test_new_event_discards_previous(self):
        await server.new_event(name="BBQ", event_date="2025-10-29")
        await server.add_session(title="Cake")
        result = await server.new_event(name="Picnic")
        assert result["sessions"] == []
        assert result["event_date"] is None

    async def test_set_event_details_no_fields(self):
        result = await server.set_event_details()
        assert "No fields" in result["error"]

    async def test_add_session_without_date(self):
        result = await server.add_session(title="Cake")
        assert result["code"] == "VALIDATION_FAILED"
        assert "date" in result["error"]

    async def test_add_session(self):
        await server.set_event_details(name="BBQ", event_date="2025-10-29")
        result = await server.add_session(title="Cake", duration=30, location="Garden")
        assert result["success"] is True
        assert result["session"]["id"] == "tmp-1"
        assert result["session"]["startTime"] == "09:00"
        assert result["session"]["endTime"] == "09:30"

    async def test_update_session_hours_draft(self):
        await server.new_event(name="BBQ", event_date="2025-10-29")
        await server.add_session(title="Cake")
        result = await server.update_session_hours("tmp-1", 14, 16)
        assert result["session"]["startTime"] == "14:00"

        schedule = await server.get_schedule()
        assert schedule["sessions"][0]["startHour"] == 14
        assert schedule["sessions"][0]["endHour"] == 16

    async def test_update_session_time_bad_order(self):
        await server.new_event(name="BBQ", event_date="2025-10-29")
        await server.add_session(title="Cake")
        result = await server.update_session_time("tmp-1", "11:00", "10:00")
        assert result["code"] == "VALIDATION_FAILED"

    async def test_update_unknown_session(self):
        await server.new_event(name="BBQ", event_date="2025-10-29")
        result = await server.update_session_time("tmp-5", "10:00", "11:00")
        assert result["code"] == "SESSION_NOT_FOUND"


# ---------------------------------------------------------------------------
# Tool tests: publishing
# ---------------------------------------------------------------------------

class TestPublishTools:
    async def test_publish_without_sessions(self):
        await server.new_event(name="BBQ", event_date="2025-10-29")
        result = await server.publish_event()
        assert result["code"] == "VALIDATION_FAILED"

    async def test_publish_success(self):
        result = await _publish_bbq("Cake", "Games")
        assert result["success"] is True
        assert result["state"] == "published"
        assert result["share_url"] == f"https://x.test/s/{result['share_code']}"
        assert [s["title"] for s in result["sessions"]] == ["Cake", "Games"]
        assert all(s["persisted"] for s in result["sessions"])
        assert result["sessions"][0]["startHour"] == 9

    async def test_publish_twice(self):
        await _publish_bbq()
        result = await server.publish_event()
        assert result["code"] == "UNSUPPORTED_OPERATION"

    async def test_add_session_after_publish(self):
        await _publish_bbq()
        result = await server.add_session(title="Games")
        assert result["code"] == "UNSUPPORTED_OPERATION"
        assert "not supported" in result["error"]

    async def test_publish_backend_failure(self):
        store = AsyncMock()
        store.create_event = AsyncMock(side_effect=CollaboratorFailure("Failed to create event: HTTP 500"))
        server._store = store

        result = await _publish_bbq()
        assert result["code"] == "COLLABORATOR_FAILED"
        schedule = await server.get_schedule()
        assert schedule["state"] == "draft"
        assert schedule["sessions"][0]["id"] == "tmp-1"

    async def test_published_edit_failure_keeps_times(self):
        published = await _publish_bbq()
        session_id = published["sessions"][0]["id"]
        server._store.patch_session_times = AsyncMock(side_effect=CollaboratorFailure("Failed to update session times"))

        result = await server.update_session_hours(session_id, 12, 13)
        assert result["code"] == "COLLABORATOR_FAILED"
        schedule = await server.get_schedule()
        assert schedule["sessions"][0]["startTime"] == published["sessions"][0]["startTime"]

    async def test_published_edit_success(self):
        published = await _publish_bbq()
        session_id = published["sessions"][0]["id"]
        result = await server.update_session_time(session_id, "10:15", "11:45")
        assert result["success"] is True

        shared = await server.get_shared_event(published["share_code"])
        assert shared["sessions"][0]["startTime"].endswith("T10:15:00")

    async def test_published_edit_server_id_with_transient_shape(self):
        store = AsyncMock()
        store.create_event = AsyncMock(return_value="AB12")
        store.get_event = AsyncMock(return_value={
            "name": "BBQ",
            "eventDate": "2025-10-29",
            "shareCode": "AB12",
            "sessions": [{"id": "tmp-1", "title": "Cake", "startTime": "09:00", "endTime": "10:00"}],
        })
        store.patch_session_times = AsyncMock(return_value=None)
        server._store = store
        await _publish_bbq()

        result = await server.update_session_time("tmp-1", "10:00", "11:00")
        assert result["success"] is True
        assert result["session"]["persisted"] is True
        store.patch_session_times.assert_awaited_once_with("AB12", "tmp-1", "10:00", "11:00")


# ---------------------------------------------------------------------------
# Tool tests: share and export
# ---------------------------------------------------------------------------

class TestShareTools:
    async def test_share_link_before_publish(self):
        await server.new_event(name="BBQ", event_date="2025-10-29")
        result = await server.get_share_link()
        assert result["code"] == "NOT_PUBLISHED"

    async def test_share_link(self):
        published = await _publish_bbq()
        result = await server.get_share_link()
        assert result["share_url"] == f"https://x.test/s/{published['share_code']}"
        assert result["qr_text"] == result["share_url"]

    async def test_calendar_links_before_publish(self):
        result = await server.get_calendar_links()
        assert result["code"] == "NOT_PUBLISHED"

    async def test_calendar_links(self):
        published = await _publish_bbq()
        code = published["share_code"]
        result = await server.get_calendar_links()
        assert "dates=20251029T090000%2F20251029T100000" in result["google_calendar"]
        assert result["ics"] == f"/api/events/{code}.ics"

    async def test_get_shared_event(self):
        published = await _publish_bbq()
        server._reconciler = None

        result = await server.get_shared_event(published["share_code"])
        assert result["state"] == "published"
        assert result["name"] == "BBQ"
        assert result["sessions"][0]["title"] == "Cake"
        assert result["google_calendar"].startswith("https://www.google.com/calendar/render?")

    async def test_get_shared_event_not_found(self):
        result = await server.get_shared_event("NOPE")
        assert result["code"] == "EVENT_NOT_FOUND"

    async def test_get_ics(self):
        published = await _publish_bbq("Cake", "Games")
        result = await server.get_ics(published["share_code"])
        assert result["filename"] == f"{published['share_code']}.ics"
        assert result["content"].count("BEGIN:VEVENT") == 2

    async def test_get_ics_not_found(self):
        result = await server.get_ics("NOPE")
        assert result["code"] == "EVENT_NOT_FOUND"
