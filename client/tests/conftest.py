import json
import threading
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import schemas
from api import TripApi
from session import SessionStore

BASE_URL = "https://split.test/"


@dataclass
class RecordedCall:
    method: str
    path: str
    json: Optional[dict]
    headers: dict
    query: dict


class FakeBackend(BaseAdapter):
    """
    Transport adapter standing in for the backend.

    Routes map (method, path) to a status/body pair, a callable taking the
    request JSON and returning one, or an exception to raise.
    """

    def __init__(self):
        super().__init__()
        self.routes = {}
        self.calls: list[RecordedCall] = []
        self._lock = threading.Lock()

    def add(self, method, path, status=200, body=None, error=None, handler=None):
        self.routes[(method, path)] = (status, body, error, handler)

    def calls_to(self, path):
        return [call for call in self.calls if call.path == path]

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        url = urlparse(request.url)
        path = url.path.lstrip("/")
        payload = json.loads(request.body) if request.body else None
        with self._lock:
            self.calls.append(RecordedCall(
                method=request.method,
                path=path,
                json=payload,
                headers=dict(request.headers),
                query={k: v[0] for k, v in parse_qs(url.query).items()},
            ))

        status, body, error, handler = self.routes.get(
            (request.method, path), (404, {"error": "no route"}, None, None)
        )
        if error is not None:
            raise error
        if handler is not None:
            status, body = handler(payload)

        response = requests.Response()
        response.status_code = status
        if body is None:
            response._content = b""
        elif isinstance(body, (bytes, str)):
            response._content = body if isinstance(body, bytes) else body.encode("utf-8")
        else:
            response._content = json.dumps(body).encode("utf-8")
        response.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        response.reason = "OK" if status < 400 else "Error"
        return response

    def close(self):
        pass


@pytest.fixture(scope="function")
def store():
    """Session store backed by a fresh in-memory database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SessionStore(factory)
    engine.dispose()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(store, backend):
    http = requests.Session()
    http.mount("https://", backend)
    return TripApi(store, base_url=BASE_URL, http=http, call_timeout=5)


@pytest.fixture
def test_user():
    return schemas.User(
        user_id="u-1",
        first_name="Asha",
        last_name="Rao",
        email="asha@example.com",
        phone="9876543210",
        user_type="USER",
    )


@pytest.fixture
def logged_in(store, test_user):
    """Store a session for the test user and return it."""
    return store.start_session("tok-123", "refresh-456", test_user)


def trip_json(trip_id="trip-1", invite_code="GOA123", name="Goa", created_at="2024-05-01T10:00:00Z", **extra):
    body = {
        "_id": f"oid-{trip_id}",
        "trip_id": trip_id,
        "trip_name": name,
        "description": None,
        "members": ["Asha_Rao", "Bala", "Chitra"],
        "creator_id": "u-1",
        "invite_code": invite_code,
        "created_at": created_at,
    }
    body.update(extra)
    return body


def members_json(free=("Bala",), not_free=("Asha_Rao",), trip_id="trip-1", trip_name="Goa"):
    return {
        "trip_id": trip_id,
        "trip_name": trip_name,
        "free_members": list(free),
        "not_free_members": list(not_free),
        "total_members": len(free) + len(not_free),
        "total_free": len(free),
        "total_not_free": len(not_free),
    }


def transaction_json(payer="Asha_Rao", receiver="Bala", amount="10.00", tx_id="tx-1", created_at="2024-05-02T09:00:00Z"):
    return {
        "message": "Payment recorded",
        "transaction_id": tx_id,
        "transaction": {
            "_id": tx_id,
            "trip_id": "trip-1",
            "payername": payer,
            "recivername": receiver,
            "amount": amount,
            "description": None,
            "type": "payment",
            "created_at": created_at,
        },
    }
