"""
HTTP surface tests: login/logout, guarded pages and the admin console
endpoints, with the backend replaced by the fake transport.
"""
from collections.abc import Iterator

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from fake_backend import FakeBackend
from yatrasathi.console.workspaces import ConsoleWorkspaces
from yatrasathi.dependencies import get_api_transport, get_session_store, get_workspaces
from yatrasathi.main import app
from yatrasathi.session.storage import MemorySessionStore

PROFILES = {
    "tok-adm": {"id": "ADM001", "name": "Asha", "role": "ADM", "email": "asha@example.com", "userType": "employee"},
    "tok-adx": {"id": "ADX001", "name": "Dev", "role": "ADX", "userType": "employee"},
    "tok-agt": {"id": "AGT001", "name": "Kiran", "role": "AGT", "userType": "employee"},
    "tok-cc": {"id": "CC001", "name": "Chitra", "role": "CC", "userType": "employee"},
}


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


ADM = bearer("tok-adm")


@pytest.fixture
def workspaces() -> ConsoleWorkspaces:
    return ConsoleWorkspaces(idle_seconds=3600)


@pytest.fixture
def client(backend: FakeBackend, workspaces: ConsoleWorkspaces) -> Iterator[TestClient]:
    backend.profiles.update(PROFILES)
    backend.seed("applications", [
        {"ap_apid": "ACC", "ap_apshort": "Accounts", "ap_active": 1},
        {"ap_apid": "TRV", "ap_apshort": "Travel", "ap_active": 1},
    ])
    backend.seed("modules", [{"mo_apid": "TRV", "mo_moid": "BKG", "mo_moshort": "Bookings"}])
    backend.seed("operations", [
        {"op_apid": "TRV", "op_moid": "BKG", "op_opid": "NEW", "op_opshort": "New Booking", "op_active": 1},
    ])
    store = MemorySessionStore()
    app.dependency_overrides[get_api_transport] = backend.transport
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_workspaces] = lambda: workspaces
    try:
        with TestClient(app, follow_redirects=False) as test_client:
            yield test_client
            test_client.portal.call(workspaces.close_all)
    finally:
        app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


class TestAuthRoutes:
    def test_anonymous_session(self, client: TestClient) -> None:
        response = client.get("/auth/session")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"authenticated": False, "loading": False, "user": None}

    def test_login_sets_cookie_and_redirect(self, client: TestClient, backend: FakeBackend) -> None:
        backend.add_account(
            "asha@example.com", "pw", token="tok-new",
            user={"us_usid": "ADM001", "us_fname": "Asha", "us_roid": "ADM"},
        )

        response = client.post(
            "/auth/login",
            json={"email": "asha@example.com", "password": "pw", "next": "/bookings"},
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["authenticated"] is True
        assert body["token"] == "tok-new"
        assert body["redirect_to"] == "/bookings"
        assert body["user"]["role"] == "ADM"
        cookie = response.headers["set-cookie"]
        assert "ys_token=tok-new" in cookie
        assert "HttpOnly" in cookie

    @pytest.mark.parametrize("target", [None, "https://evil.example", "//evil.example", "bookings"])
    def test_login_ignores_unsafe_next(self, client: TestClient, backend: FakeBackend, target) -> None:
        backend.add_account("asha@example.com", "pw", token="tok-new", user={"id": "ADM001", "role": "ADM"})

        response = client.post(
            "/auth/login",
            json={"email": "asha@example.com", "password": "pw", "next": target},
        )

        assert response.json()["redirect_to"] == "/dashboard"

    def test_login_rejected(self, client: TestClient, backend: FakeBackend) -> None:
        backend.add_account("asha@example.com", "pw", token="tok-new", user={"id": "ADM001"})

        response = client.post("/auth/login", json={"email": "asha@example.com", "password": "bad"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "AUTH_ERROR"

    def test_login_payload_validated(self, client: TestClient) -> None:
        response = client.post("/auth/login", json={"email": "asha@example.com"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_login_then_restore(self, client: TestClient, backend: FakeBackend) -> None:
        backend.add_account(
            "asha@example.com", "pw", token="tok-adm",
            user={"us_usid": "ADM001", "us_fname": "Asha", "us_roid": "ADM"},
        )
        client.post("/auth/login", json={"email": "asha@example.com", "password": "pw"})

        response = client.get("/auth/session", headers=ADM)

        body = response.json()
        assert body["authenticated"] is True
        assert body["user"]["id"] == "ADM001"
        assert body["user"]["role"] == "ADM"

    def test_cookie_token_is_accepted(self, client: TestClient) -> None:
        client.cookies.set("ys_token", "tok-cc")

        response = client.get("/auth/session")

        assert response.json()["user"]["role"] == "CC"

    def test_expired_token_is_anonymous(self, client: TestClient) -> None:
        response = client.get("/auth/session", headers=bearer("tok-gone"))
        assert response.json()["authenticated"] is False

    def test_logout(self, client: TestClient, backend: FakeBackend) -> None:
        response = client.post("/auth/logout", headers=ADM)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["authenticated"] is False
        assert ("POST", "/auth/logout") in [(method, path) for method, path, _ in backend.requests]
        assert 'ys_token=""' in response.headers["set-cookie"]

    def test_navigation(self, client: TestClient) -> None:
        response = client.get("/navigation", headers=bearer("tok-cc"))

        body = response.json()
        assert [item["path"] for item in body["items"]] == [
            "/bookings", "/reports", "/employee", "/employee/profile",
        ]
        assert body["features"] == sorted(body["features"])
        assert "view_billing" not in body["features"]


class TestPages:
    def test_anonymous_is_sent_to_login(self, client: TestClient) -> None:
        response = client.get("/pages/bookings", params={"tab": "open"})

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/auth/employee-login?next=%2Fpages%2Fbookings%3Ftab%3Dopen"

    def test_admin_sees_dashboard(self, client: TestClient) -> None:
        response = client.get("/pages/dashboard", headers=ADM)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["page"] == "dashboard"
        assert body["user"]["id"] == "ADM001"
        assert {"path": "/admin-dashboard", "label": "Admin Panel"} in body["navigation"]

    def test_agent_dashboard_is_restricted(self, client: TestClient) -> None:
        response = client.get("/pages/dashboard", headers=bearer("tok-agt"))

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/unauthorized"

    def test_customer_care_billing_denied(self, client: TestClient) -> None:
        assert client.get("/pages/billing", headers=bearer("tok-cc")).status_code == status.HTTP_303_SEE_OTHER
        assert client.get("/pages/bookings", headers=bearer("tok-cc")).status_code == status.HTTP_200_OK

    def test_admin_dashboard_needs_admin_role(self, client: TestClient) -> None:
        assert client.get("/pages/admin-dashboard", headers=bearer("tok-agt")).status_code == 303
        assert client.get("/pages/admin-dashboard", headers=bearer("tok-adx")).status_code == 200

    def test_signed_in_pages(self, client: TestClient) -> None:
        assert client.get("/pages/profile", headers=bearer("tok-cc")).status_code == status.HTTP_200_OK

    def test_unknown_page(self, client: TestClient) -> None:
        response = client.get("/pages/nope", headers=ADM)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_unauthorized_page(self, client: TestClient) -> None:
        response = client.get("/unauthorized")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["title"] == "Access Denied"


class TestConsoleRoutes:
    def test_first_visit_opens_default_module(self, client: TestClient) -> None:
        response = client.get("/admin/console", headers=ADM)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["module"] == "applications"
        assert [row["key"] for row in body["rows"]] == [["ACC"], ["TRV"]]
        assert body["selected_key"] == ["ACC"]

    def test_non_admin_is_redirected(self, client: TestClient) -> None:
        response = client.get("/admin/console", headers=bearer("tok-agt"))

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/unauthorized"

    def test_anonymous_is_sent_to_login(self, client: TestClient) -> None:
        response = client.get("/admin/console")

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"].startswith("/auth/employee-login?next=")

    def test_edit_and_save_operation(self, client: TestClient, backend: FakeBackend) -> None:
        client.post("/admin/console/module", json={"module": "operations"}, headers=ADM)
        client.post("/admin/console/select", json={"key": ["TRV", "BKG", "NEW"]}, headers=ADM)
        client.post("/admin/console/edit", headers=ADM)
        patched = client.patch(
            "/admin/console/fields", json={"values": {"op_opshort": "Create Booking"}}, headers=ADM
        )
        assert patched.json()["form_data"]["op_opshort"] == "Create Booking"

        response = client.post("/admin/console/save", headers=ADM)

        body = response.json()
        assert body["notice"]["title"] == "Saved"
        assert body["editing"] is False
        assert [path for method, path, _ in backend.requests if method == "PUT"] == ["/permissions/TRV/BKG/NEW"]

    def test_state_is_kept_per_session(self, client: TestClient) -> None:
        client.post("/admin/console/module", json={"module": "operations"}, headers=ADM)

        assert client.get("/admin/console", headers=ADM).json()["module"] == "operations"
        assert client.get("/admin/console", headers=bearer("tok-adx")).json()["module"] == "applications"

    def test_missing_email_never_reaches_backend(self, client: TestClient, backend: FakeBackend) -> None:
        client.post("/admin/console/module", json={"module": "users"}, headers=ADM)
        client.post("/admin/console/new", headers=ADM)
        client.patch(
            "/admin/console/fields", json={"values": {"us_usid": "U9", "us_usname": "New User"}}, headers=ADM
        )

        body = client.post("/admin/console/save", headers=ADM).json()

        assert body["notice"]["title"] == "Validation Error"
        assert "Email Address is required" in body["notice"]["description"]
        assert [call for call in backend.requests if call[0] == "POST"] == []

    def test_delete_flow(self, client: TestClient, backend: FakeBackend) -> None:
        client.post("/admin/console/select", json={"index": 1}, headers=ADM)

        pending = client.post("/admin/console/delete", json={}, headers=ADM).json()
        assert pending["pending_delete"] is True
        assert pending["notice"]["title"] == "Confirm Delete"

        done = client.post("/admin/console/delete", json={"confirmed": True}, headers=ADM).json()
        assert done["notice"]["title"] == "Deleted"
        assert [row["key"] for row in done["rows"]] == [["ACC"]]
        assert ("DELETE", "/security/applications/TRV") in [(m, p) for m, p, _ in backend.requests]

    def test_executive_cannot_delete(self, client: TestClient, backend: FakeBackend) -> None:
        adx = bearer("tok-adx")
        body = client.post("/admin/console/delete", json={"confirmed": True}, headers=adx).json()

        assert body["notice"]["title"] == "Access Denied"
        assert [call for call in backend.requests if call[0] == "DELETE"] == []

    def test_keyboard_and_navigation(self, client: TestClient) -> None:
        body = client.post("/admin/console/keys", json={"key": "ArrowDown"}, headers=ADM).json()
        assert body["selected_key"] == ["TRV"]
        assert body["scroll_to"] == 1

        body = client.post("/admin/console/navigate", json={"direction": "first"}, headers=ADM).json()
        assert body["selected_key"] == ["ACC"]

    def test_filters_and_paging(self, client: TestClient) -> None:
        body = client.post("/admin/console/filters", json={"filters": {"shortName": "trav"}}, headers=ADM).json()
        assert body["total_records"] == 1

        body = client.post("/admin/console/filters/clear", headers=ADM).json()
        assert body["total_records"] == 2

        body = client.post("/admin/console/page", json={"page": 9}, headers=ADM).json()
        assert body["page"] == 1

    def test_unknown_filter_is_bad_request(self, client: TestClient) -> None:
        response = client.post("/admin/console/filters", json={"filters": {"nope": 1}}, headers=ADM)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_select_needs_index_or_key(self, client: TestClient) -> None:
        response = client.post("/admin/console/select", json={}, headers=ADM)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_invalid_direction(self, client: TestClient) -> None:
        response = client.post("/admin/console/navigate", json={"direction": "sideways"}, headers=ADM)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_unknown_module(self, client: TestClient) -> None:
        response = client.post("/admin/console/module", json={"module": "nope"}, headers=ADM)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_refresh_after_backend_failure(self, client: TestClient, backend: FakeBackend) -> None:
        client.get("/admin/console", headers=ADM)
        backend.fail("GET", "/security/applications", 500, {"success": False, "message": "Internal failure"})

        body = client.post("/admin/console/refresh", headers=ADM).json()

        assert body["notice"]["description"] == "Internal failure"
        assert len(body["rows"]) == 2

    def test_logout_discards_console(self, client: TestClient) -> None:
        client.post("/admin/console/module", json={"module": "operations"}, headers=ADM)
        client.post("/auth/logout", headers=ADM)

        assert client.get("/admin/console", headers=ADM).json()["module"] == "applications"

    def test_rejected_token_discards_console(
        self, client: TestClient, backend: FakeBackend, workspaces: ConsoleWorkspaces
    ) -> None:
        client.get("/admin/console", headers=ADM)
        assert len(workspaces) == 1

        del backend.profiles["tok-adm"]
        response = client.get("/admin/console", headers=ADM)

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"].startswith("/auth/employee-login")
        assert len(workspaces) == 0

    def test_logout_removes_workspace(self, client: TestClient, workspaces: ConsoleWorkspaces) -> None:
        client.get("/admin/console", headers=ADM)
        client.post("/auth/logout", headers=ADM)

        assert len(workspaces) == 0
