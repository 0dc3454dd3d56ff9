"""Tests for the demo web UI built on HtmxMiddleware."""

import json

import pytest
from starlette.testclient import TestClient

from webui.webui import app

HX = {"HX-Request": "true"}


@pytest.fixture
def client():
    app.state.contacts = ["Ada Lovelace", "Grace Hopper", "Alan Turing"]
    return TestClient(app)


class TestTemplates:

    def test_index_full_page(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "<html" in response.text
        assert "3 contacts stored." in response.text
        assert response.headers["Cache-Control"] == "public, max-age=10"

    def test_index_partial(self, client):
        response = client.get("/", headers=HX)
        assert response.status_code == 200
        assert "<html" not in response.text
        assert "Contacts demo" in response.text
        assert "boosted link" not in response.text

    def test_index_boosted(self, client):
        response = client.get("/", headers={**HX, "HX-Boosted": "true"})
        assert "boosted link" in response.text

    def test_contacts_search_prompt(self, client):
        response = client.get("/contacts", headers={**HX, "HX-Prompt": "grace"})
        assert "Grace Hopper" in response.text
        assert "Ada Lovelace" not in response.text
        assert response.headers["HX-Replace-Url"] == "/contacts?q=grace"

    def test_contacts_query_full_page(self, client):
        response = client.get("/contacts?q=ada")
        assert "<html" in response.text
        assert "Ada Lovelace" in response.text
        assert "Alan Turing" not in response.text
        assert "HX-Replace-Url" not in response.headers

    def test_contacts_rows_only(self, client):
        response = client.get("/contacts", headers={**HX, "HX-Target": "contact-rows"})
        assert "<h1>" not in response.text
        assert response.text.count("<tr>") == 3


class TestContacts:

    def test_add_htmx(self, client):
        response = client.post("/contacts/new", data={"name": " Edsger Dijkstra "}, headers=HX)
        assert response.status_code == 200
        assert "<tr><td>Edsger Dijkstra</td></tr>" in response.text
        assert response.headers["HX-Retarget"] == "#contact-rows"
        assert response.headers["HX-Reswap"] == "beforeend scroll:bottom"
        assert response.headers["HX-Push-Url"] == "/contacts"
        assert json.loads(response.headers["HX-Trigger-After-Settle"]) == {"contactAdded": {"name": "Edsger Dijkstra"}}
        assert app.state.contacts[-1] == "Edsger Dijkstra"

    def test_add_plain_form(self, client):
        response = client.post("/contacts/new", data={"name": "Barbara Liskov"}, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["Location"] == "/contacts"
        assert "HX-Trigger-After-Settle" not in response.headers

    def test_add_empty_name(self, client):
        response = client.post("/contacts/new", data={"name": "  "}, headers=HX)
        assert response.status_code == 400
        assert "Invalid contact name" in response.text
        assert "<html" not in response.text

    def test_clear_refreshes(self, client):
        response = client.post("/contacts/clear", headers=HX)
        assert response.status_code == 204
        assert response.headers["HX-Refresh"] == "true"
        assert app.state.contacts == []


class TestNavigation:

    def test_go_htmx(self, client):
        response = client.get("/go?to=/contacts", headers=HX, follow_redirects=False)
        assert response.status_code == 204
        assert response.headers["HX-Redirect"] == "/contacts"
        assert "Location" not in response.headers

    def test_go_plain(self, client):
        response = client.get("/go?to=/contacts", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["Location"] == "/contacts"

    def test_go_non_ascii_target(self, client):
        response = client.get("/go?to=/%E4%B8%AD", headers=HX, follow_redirects=False)
        assert response.status_code == 204
        assert response.headers["HX-Redirect"] == "/%E4%B8%AD"

    def test_location_default(self, client):
        response = client.get("/location", headers=HX)
        assert json.loads(response.headers["HX-Location"]) == {
            "path": "/contacts",
            "target": "#main",
            "swap": "innerHTML",
        }

    def test_location_path_only(self, client):
        response = client.get("/location?path=/contacts", headers=HX)
        assert response.headers["HX-Location"] == "/contacts"

    def test_location_without_path(self, client):
        response = client.get("/location?target=%23main", headers=HX)
        assert response.status_code == 400
        assert "path is required" in response.text
        assert "HX-Location" not in response.headers

    def test_not_found(self, client):
        response = client.get("/missing")
        assert response.status_code == 404
        assert "<html" in response.text
        assert response.headers["Vary"] == "HX-Request"

    def test_not_found_partial(self, client):
        response = client.get("/missing", headers=HX)
        assert response.status_code == 404
        assert "<html" not in response.text
        assert "/missing" in response.text
