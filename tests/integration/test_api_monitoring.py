"""Integration tests for status-monitor endpoints."""

import pytest

MONITOR = {"name": "Weather", "testUrl": "https://example.test/api/weather", "type": "GET"}


@pytest.fixture
async def added(test_client, master_headers):
    resp = await test_client.post("/api/admin/status-monitoring/add", headers=master_headers, json=MONITOR)
    assert resp.status_code == 201, resp.text
    return resp.json()["endpoint"]


class TestAdd:
    async def test_add(self, added):
        assert added == {
            "name": "Weather",
            "testUrl": "https://example.test/api/weather",
            "type": "GET",
            "requestBody": "",
            "hidden": False,
        }

    async def test_duplicate(self, test_client, added, master_headers):
        resp = await test_client.post("/api/admin/status-monitoring/add", headers=master_headers, json=MONITOR)
        assert resp.status_code == 409

    async def test_missing_fields(self, test_client, master_headers):
        resp = await test_client.post(
            "/api/admin/status-monitoring/add", headers=master_headers, json={"name": "x"}
        )
        assert resp.status_code == 400

    async def test_post_json_requires_valid_body(self, test_client, master_headers):
        resp = await test_client.post(
            "/api/admin/status-monitoring/add",
            headers=master_headers,
            json={**MONITOR, "type": "POST_JSON", "requestBody": "{bad"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "requestBody must be valid JSON for POST_JSON type."

    async def test_requires_master_key(self, test_client, user_headers):
        resp = await test_client.post("/api/admin/status-monitoring/add", headers=user_headers, json=MONITOR)
        assert resp.status_code == 403


class TestListing:
    async def test_hidden_filtered_from_public_list(self, test_client, added, master_headers):
        resp = await test_client.post(
            "/api/admin/status-monitoring/toggle-visibility/Weather", headers=master_headers
        )
        assert resp.json()["newState"] is True

        public = (await test_client.get("/api/status-monitoring/list")).json()
        everything = (
            await test_client.get("/api/admin/status-monitoring/list-all", headers=master_headers)
        ).json()

        assert public == {"success": True, "endpoints": []}
        assert [e["name"] for e in everything["endpoints"]] == ["Weather"]
        assert everything["endpoints"][0]["hidden"] is True

    async def test_list_all_requires_master_key(self, test_client):
        resp = await test_client.get("/api/admin/status-monitoring/list-all")
        assert resp.status_code == 401


class TestEditAndDelete:
    async def test_edit_merges(self, test_client, added, master_headers):
        resp = await test_client.post(
            "/api/admin/status-monitoring/edit/Weather",
            headers=master_headers,
            json={"type": "POST_JSON", "requestBody": '{"city": "Oslo"}'},
        )

        assert resp.status_code == 200
        endpoint = resp.json()["endpoint"]
        assert endpoint["testUrl"] == MONITOR["testUrl"]
        assert endpoint["type"] == "POST_JSON"
        assert endpoint["requestBody"] == '{"city": "Oslo"}'

    async def test_edit_unknown(self, test_client, master_headers):
        resp = await test_client.post(
            "/api/admin/status-monitoring/edit/nope", headers=master_headers, json={"testUrl": "https://x.test"}
        )
        assert resp.status_code == 404

    async def test_delete(self, test_client, added, master_headers, settings):
        resp = await test_client.delete("/api/admin/status-monitoring/delete/Weather", headers=master_headers)

        assert resp.status_code == 200
        assert (await test_client.get("/api/status-monitoring/list")).json()["endpoints"] == []
        assert settings.monitored_endpoints_path.read_text().strip() == "[]"

    async def test_delete_unknown(self, test_client, master_headers):
        resp = await test_client.delete("/api/admin/status-monitoring/delete/nope", headers=master_headers)
        assert resp.status_code == 404
