"""
Pytest configuration and fixtures for adminkit tests.

Provides shared fixtures: temporary configuration files, an in-memory fake
of the admin REST API served through httpx.MockTransport, authorization
contexts and sample records.
"""

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List

import httpx
import pytest
import yaml

from adminkit.src.api_client import AdminApiClient
from adminkit.src.auth import AuthorizationContext, PermissionSet
from adminkit.src.navigation import Navigator
from adminkit.src.query import CONTAINS_SUFFIX, QueryDescriptor, SortOrder
from adminkit.src.resource_client import ResourceClient
from adminkit.src.resources import BILLINGS, RESTAURANTS, default_registry


# ============================================================================
# Fake API
# ============================================================================


MAX_PAGE_SIZE = 100


class FakeAdminApi:
    """
    In-memory stand-in for the admin REST API.

    Implements the endpoints the resource client calls and records every
    request so tests can count round trips.
    """

    def __init__(self):
        self.registry = default_registry()
        self.store: Dict[str, Dict[str, Dict[str, Any]]] = {e.name: {} for e in self.registry}
        self.requests: List[httpx.Request] = []
        self._next_id = 0
        self.transport = httpx.MockTransport(self.handle)

    def seed(self, entity: str, **values: Any) -> Dict[str, Any]:
        """Insert a record directly and return it."""
        return self._insert(entity, values)

    def _insert(self, entity: str, values: Dict[str, Any]) -> Dict[str, Any]:
        self._next_id += 1
        now = datetime.now(timezone.utc).isoformat()
        record = {"id": f"{entity[:3]}_{self._next_id:04d}", "created_at": now, "updated_at": now}
        record.update(values)
        self.store[entity][record["id"]] = record
        return record

    def mutations(self, method: str = None) -> List[httpx.Request]:
        methods = {method} if method else {"POST", "PUT", "DELETE"}
        return [r for r in self.requests if r.method in methods]

    def _counts(self, entity: str, record: Dict[str, Any]) -> Dict[str, int]:
        counts = {}
        for related in self.registry.get(entity).counts:
            descriptor = self.registry.get(related)
            refs = [f.name for f in descriptor.reference_fields if f.related == entity]
            counts[related] = sum(
                1 for other in self.store[related].values()
                if any(other.get(ref) == record["id"] for ref in refs)
            )
        return counts

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        if len(parts) < 2 or parts[0] != "api" or parts[1] not in self.store:
            return httpx.Response(404, json={"detail": "Unknown endpoint"})

        entity = parts[1]
        table = self.store[entity]
        body = json.loads(request.content) if request.content else {}

        if len(parts) == 2:
            if request.method == "POST":
                return httpx.Response(201, json=self._insert(entity, body))
            if request.method == "GET":
                return self._list(entity, request.url.params)
            return httpx.Response(405)

        record = table.get(parts[2])
        if record is None:
            return httpx.Response(404, json={"detail": f"{entity} {parts[2]} not found"})

        if request.method == "GET":
            result = dict(record)
            if "_count" in request.url.params.get("include", ""):
                result["_count"] = self._counts(entity, record)
            return httpx.Response(200, json=result)
        if request.method == "PUT":
            record.update(body)
            record["updated_at"] = datetime.now(timezone.utc).isoformat()
            return httpx.Response(200, json=record)
        if request.method == "DELETE":
            del table[parts[2]]
            return httpx.Response(204)
        return httpx.Response(405)

    def _list(self, entity: str, params: httpx.QueryParams) -> httpx.Response:
        descriptor = self.registry.get(entity)
        records = list(self.store[entity].values())

        for key, value in params.items():
            if key.endswith(CONTAINS_SUFFIX):
                name = key[: -len(CONTAINS_SUFFIX)]
                records = [r for r in records if value.lower() in str(r.get(name) or "").lower()]
            elif descriptor.has_field(key):
                records = [r for r in records if str(r.get(key)) == value]

        ordering = QueryDescriptor(
            entity=descriptor,
            order_by=params.get("order_by"),
            order=SortOrder(params.get("order", "asc")),
        )
        records = ordering.sort(records)

        offset = int(params.get("offset", 0))
        limit = min(int(params.get("limit", 20)), MAX_PAGE_SIZE)
        return httpx.Response(
            200,
            json={"data": records[offset: offset + limit], "totalCount": len(records)},
        )


@pytest.fixture
def fake_api() -> FakeAdminApi:
    """Fresh in-memory API."""
    return FakeAdminApi()


@pytest.fixture
def mock_server_url() -> str:
    """Mock server URL for testing."""
    return "http://localhost:8000"


@pytest.fixture
def api_client(fake_api: FakeAdminApi, mock_server_url: str) -> AdminApiClient:
    """API client wired to the fake API."""
    return AdminApiClient(server_url=mock_server_url, api_token="tok_test", transport=fake_api.transport)


@pytest.fixture
def billings_client(api_client: AdminApiClient) -> ResourceClient:
    return ResourceClient(api_client, BILLINGS)


@pytest.fixture
def restaurants_client(api_client: AdminApiClient) -> ResourceClient:
    return ResourceClient(api_client, RESTAURANTS)


@pytest.fixture
def registry():
    return default_registry()


# ============================================================================
# Authorization / Navigation Fixtures
# ============================================================================


@pytest.fixture
def allow_all() -> AuthorizationContext:
    """Signed-in session allowed to do everything."""
    return AuthorizationContext(session_token="tok_test", checker=PermissionSet(["*:*:*"]))


@pytest.fixture
def read_only() -> AuthorizationContext:
    """Signed-in session that may only read."""
    return AuthorizationContext(session_token="tok_test", checker=PermissionSet(["project:*:read"]))


@pytest.fixture
def deny_all() -> AuthorizationContext:
    """Signed-in session with no grants."""
    return AuthorizationContext(session_token="tok_test", checker=PermissionSet())


@pytest.fixture
def navigator() -> Navigator:
    return Navigator()


# ============================================================================
# Record Fixtures
# ============================================================================


@pytest.fixture
def valid_billing() -> dict:
    """A draft that passes the billings validation schema."""
    return {"order_summary": "Table 5 dinner", "total_value": 42.50, "table_number": "5"}


@pytest.fixture
def seeded_restaurants(fake_api: FakeAdminApi) -> List[Dict[str, Any]]:
    return [
        fake_api.seed("restaurants", name="Luigi's Trattoria", description="Italian"),
        fake_api.seed("restaurants", name="Luna Sushi", description="Japanese"),
        fake_api.seed("restaurants", name="Blue Door Bistro", description="French"),
    ]


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """Temporary directory for configuration files."""
    with tempfile.TemporaryDirectory(prefix="adminkit_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def admin_config_data() -> dict:
    return {
        "server_url": "http://localhost:8000",
        "api_token": "tok_test_1234567890",
        "log_level": "DEBUG",
        "page_size": 5,
        "lookup_limit": 3,
        "permissions": ["project:billings:*", "project:restaurants:read"],
    }


@pytest.fixture
def admin_config_file(temp_config_dir: Path, admin_config_data: dict) -> Path:
    """Configuration file written from admin_config_data."""
    config_path = temp_config_dir / "adminkit.yaml"
    with open(config_path, "w") as f:
        yaml.dump(admin_config_data, f)
    return config_path


@pytest.fixture
def clean_environment(monkeypatch) -> None:
    """Remove adminkit environment variables for test isolation."""
    for name in (
        "ADMINKIT_SERVER_URL",
        "ADMINKIT_API_TOKEN",
        "ADMINKIT_LOG_LEVEL",
        "ADMINKIT_CONFIG_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
