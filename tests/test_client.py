import pytest
import requests

from bizdash.client import ApiClient, unwrap, unwrap_list
from bizdash.config import DashboardSettings
from bizdash.exceptions import AuthError, DashboardAPIError, NotFoundError, SessionExpiredError
from bizdash.session import SessionStore

from conftest import BASE_URL, envelope


class TestApiClient:
    """Unit tests for the backend HTTP client"""

    def test_attaches_bearer_token_from_session(self, signed_in, settings, http):
        session = SessionStore(signed_in)
        session.restore()
        client = ApiClient(settings, session, http=http)
        http.add("GET", "/items", envelope([]))

        client.get("/items")

        headers = http.calls[0].headers
        assert headers["Authorization"] == "Bearer tok-123"
        assert headers["Content-Type"] == "application/json"

    def test_no_authorization_header_without_token(self, api, http):
        http.add("GET", "/health", {"status": "ok"})
        api.get("/health")
        assert "Authorization" not in http.calls[0].headers

    def test_explicit_token_overrides_session(self, api, http):
        http.add("POST", "/auth/logout", {})
        api.request("post", "/auth/logout", token="old-token")
        assert http.calls[0].method == "POST"
        assert http.calls[0].headers["Authorization"] == "Bearer old-token"

    def test_service_billing_base_path(self, billing_api, http):
        assert billing_api.base_url == f"{BASE_URL}/service-billing"
        http.add("GET", "/service-billing/services", envelope({"services": []}))
        billing_api.get("/services")
        assert http.paths() == ["GET /service-billing/services"]

    def test_none_params_are_dropped(self, api, http):
        http.add("GET", "/customers", envelope([]))
        api.get("/customers", params={"search": None, "page": 2})
        assert http.calls[0].params == {"page": 2}

    def test_all_none_params_send_no_query(self, api, http):
        http.add("GET", "/customers", envelope([]))
        api.get("/customers", params={"search": None})
        assert http.calls[0].params is None

    def test_post_sends_json_body(self, api, http):
        http.add("POST", "/items", envelope({"id": 1}))
        api.post("/items", data={"item_name": "Shampoo"})
        assert http.calls[0].json == {"item_name": "Shampoo"}

    def test_empty_body_returns_empty_dict(self, api, http):
        http.add("DELETE", "/items/4", None, status=204)
        assert api.delete("/items/4") == {}

    def test_401_expires_session(self, signed_in, settings, http):
        session = SessionStore(signed_in)
        session.restore()
        client = ApiClient(settings, session, http=http)
        http.add("GET", "/analytics/overview", {"message": "Token expired"}, status=401)

        with pytest.raises(SessionExpiredError) as exc:
            client.get("/analytics/overview")

        assert exc.value.status_code == 401
        assert exc.value.backend_message == "Token expired"
        assert session.is_authenticated is False
        assert signed_in.get_item("token") is None

    def test_credential_401_keeps_session(self, signed_in, settings, http):
        session = SessionStore(signed_in)
        session.restore()
        client = ApiClient(settings, session, http=http)
        http.add("POST", "/auth/login", {"message": "Invalid credentials"}, status=401)

        with pytest.raises(AuthError) as exc:
            client.request("POST", "/auth/login", data={"email": "a", "password": "b"},
                           expire_on_401=False)

        assert not isinstance(exc.value, SessionExpiredError)
        assert exc.value.backend_message == "Invalid credentials"
        assert session.token == "tok-123"
        assert signed_in.get_item("token") == "tok-123"

    def test_401_without_session_token_does_not_touch_storage(self, api, session, http):
        http.add("POST", "/auth/login", {"message": "Invalid credentials"}, status=401)
        with pytest.raises(SessionExpiredError):
            api.post("/auth/login", data={"email": "a", "password": "b"})
        assert session.is_authenticated is False

    def test_404_raises_not_found(self, api, http):
        http.add("GET", "/items/99", {"message": "Item not found"}, status=404)
        with pytest.raises(NotFoundError) as exc:
            api.get("/items/99")
        assert exc.value.user_message("fallback") == "Item not found"

    def test_other_errors_carry_backend_message(self, api, http):
        http.add("POST", "/invoices", {"success": False, "error": "Customer required"}, status=422)
        with pytest.raises(DashboardAPIError) as exc:
            api.post("/invoices", data={})
        assert exc.value.status_code == 422
        assert exc.value.backend_message == "Customer required"

    def test_error_without_json_body_uses_fallback(self, api, http):
        response = requests.Response()
        response.status_code = 500
        response._content = b"<html>Internal Server Error</html>"
        http.routes[("GET", "/items")] = [response]

        with pytest.raises(DashboardAPIError) as exc:
            api.get("/items")
        assert exc.value.backend_message is None
        assert exc.value.user_message("Failed to load items") == "Failed to load items"

    def test_transport_error_is_wrapped(self, api, http, monkeypatch):
        def boom(**kwargs):
            raise requests.exceptions.ConnectionError("connection refused")
        monkeypatch.setattr(http, "request", boom)

        with pytest.raises(DashboardAPIError, match="Request failed"):
            api.get("/items")

    def test_health_check(self, api, http):
        http.add("GET", "/health", {"status": "ok"})
        assert api.health_check() is True

    def test_health_check_failure(self, api, http):
        http.add("GET", "/health", None, status=503)
        assert api.health_check() is False

    def test_invalid_settings_rejected(self):
        with pytest.raises(ValueError):
            ApiClient(DashboardSettings(API_BASE_URL="  "))

    def test_close(self, api, http):
        api.close()
        assert http.closed


class TestUnwrap:

    def test_strips_envelope(self):
        assert unwrap(envelope({"a": 1})) == {"a": 1}

    def test_bare_payload(self):
        assert unwrap([1, 2]) == [1, 2]

    def test_keyed_member(self):
        assert unwrap(envelope({"invoice": {"id": 1}}), "invoice") == {"id": 1}

    def test_default_for_missing(self):
        assert unwrap(envelope(None), default={}) == {}
        assert unwrap(envelope({}), "assignments", []) == []

    def test_unwrap_list_bare_and_keyed(self):
        assert unwrap_list(envelope([{"id": 1}])) == [{"id": 1}]
        assert unwrap_list(envelope({"invoices": [{"id": 2}]}), "invoices") == [{"id": 2}]
        assert unwrap_list(envelope({"other": []}), "invoices") == []
