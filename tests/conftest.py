import json
from typing import Any, Dict, List, NamedTuple, Optional

import pytest
import requests

from bizdash.client import ApiClient
from bizdash.config import DashboardSettings
from bizdash.context import DashboardContext
from bizdash.session import SessionStore
from bizdash.storage import LocalStorage


BASE_URL = "http://backend.test/api"


def make_response(status: int = 200, body: Any = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    return response


class Call(NamedTuple):
    method: str
    path: str
    headers: Dict[str, str]
    json: Optional[Dict[str, Any]]
    params: Optional[Dict[str, Any]]


class FakeHttp:
    """Stands in for requests.Session: records calls, replays scripted responses"""

    def __init__(self):
        self.routes: Dict[tuple, List[requests.Response]] = {}
        self.calls: List[Call] = []
        self.closed = False

    def add(self, method: str, path: str, body: Any = None, status: int = 200) -> "FakeHttp":
        self.routes.setdefault((method.upper(), path), []).append(make_response(status, body))
        return self

    def request(self, method, url, headers=None, json=None, params=None, timeout=None):
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        self.calls.append(Call(method, path, headers or {}, json, params))
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {path}")
        # the last scripted response repeats
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def close(self):
        self.closed = True

    def paths(self) -> List[str]:
        return [f"{c.method} {c.path}" for c in self.calls]


def envelope(data: Any, message: str = "OK") -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data}


USER = {"id": 7, "business_id": 3, "email": "owner@example.com", "first_name": "Jane",
        "last_name": "Doe", "role": "owner", "status": "active"}
BUSINESS = {"id": 3, "name": "Glow Salon", "business_name": "Glow Salon & Spa",
            "email": "hello@glow.test", "phone": "+254700000000", "address": "Moi Avenue, Nairobi",
            "status": "active"}


def assignment(id, customer_id=1, status="completed", price="1500.00", **extra) -> Dict[str, Any]:
    row = {
        "id": id,
        "customer_id": customer_id,
        "customer_name": f"Customer {customer_id}",
        "customer_phone": f"07000000{customer_id:02d}",
        "employee_id": 11,
        "employee_name": "Mary",
        "service_id": 21,
        "service_name": "Haircut",
        "service_price": price,
        "status": status,
        "start_time": "2024-05-01T10:00:00",
        "estimated_duration": 30,
        "actual_duration": None,
    }
    row.update(extra)
    return row


@pytest.fixture
def settings():
    return DashboardSettings(API_BASE_URL=BASE_URL, STORAGE_PATH="unused.json")


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture
def session(storage):
    return SessionStore(storage)


@pytest.fixture
def api(settings, session, http):
    return ApiClient(settings, session, http=http)


@pytest.fixture
def billing_api(settings, session, http):
    return ApiClient.for_service_billing(settings, session, http=http)


@pytest.fixture
def context(settings, storage, http):
    return DashboardContext(settings, storage=storage, http=http)


@pytest.fixture
def signed_in(storage):
    """Storage holding a persisted session"""
    storage.set_item("token", "tok-123")
    storage.set_json("user", USER)
    storage.set_json("business", BUSINESS)
    return storage
