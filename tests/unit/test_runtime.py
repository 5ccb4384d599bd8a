"""Unit tests for the taskline.runtime module."""

from __future__ import annotations

import asyncio
import typing as typ
from http import HTTPStatus

import falcon.asgi
import falcon.testing
import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> falcon.testing.TestClient:
    """Create a test client for the health-only runtime app."""
    from taskline.runtime import create_app

    monkeypatch.delenv("TASKLINE_DATABASE_URL", raising=False)
    return falcon.testing.TestClient(create_app())


class TestHealthOnlyRuntime:
    """Without a database URL only the probes are served."""

    def test_health_returns_json_status_ok(
        self, client: falcon.testing.TestClient
    ) -> None:
        """GET /health returns JSON with status ok."""
        result = client.simulate_get("/health")
        assert result.status_code == HTTPStatus.OK
        assert result.json == {"status": "ok"}
        content_type = result.headers.get("content-type", "")
        assert content_type.startswith("application/json")

    def test_ready_reports_health_only(
        self, client: falcon.testing.TestClient
    ) -> None:
        """GET /ready names the health-only mode."""
        result = client.simulate_get("/ready")
        assert result.status_code == HTTPStatus.OK
        assert result.json == {"status": "ready", "mode": "health-only"}

    def test_domain_routes_absent(self, client: falcon.testing.TestClient) -> None:
        """Ingestion routes are not mounted."""
        result = client.simulate_post("/commits", body=b"{}")
        assert result.status_code == HTTPStatus.NOT_FOUND


class TestDatabaseRuntime:
    """With TASKLINE_DATABASE_URL the domain routes are mounted."""

    def test_full_app_with_schema_creation(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """TASKLINE_CREATE_SCHEMA creates the tables before serving."""
        from taskline.runtime import create_app

        url = f"sqlite+aiosqlite:///{tmp_path / 'runtime.db'}"
        monkeypatch.setenv("TASKLINE_DATABASE_URL", url)
        monkeypatch.setenv("TASKLINE_CREATE_SCHEMA", "1")
        monkeypatch.delenv("TASKLINE_NOTIFICATIONS", raising=False)

        app = create_app()

        assert isinstance(app, falcon.asgi.App)
        result = falcon.testing.TestClient(app).simulate_get("/ready")
        assert result.json == {"status": "ready", "mode": "full"}

        async def _tables() -> set[str]:
            engine = create_async_engine(url)
            try:
                async with engine.connect() as conn:
                    names = await conn.run_sync(
                        lambda sync_conn: inspect(sync_conn).get_table_names()
                    )
            finally:
                await engine.dispose()
            return set(names)

        assert {"projects", "tasks", "commit_records"} <= asyncio.run(_tables())


class TestParsePort:
    """Validation of TASKLINE_PORT."""

    @pytest.mark.parametrize("value", ["1", "8080", "65535"])
    def test_accepts_valid_ports(self, value: str) -> None:
        """Ports in range are returned as integers."""
        from taskline.runtime import _parse_port

        assert _parse_port(value) == int(value)

    @pytest.mark.parametrize("value", ["0", "65536", "http", ""])
    def test_rejects_invalid_ports(self, value: str) -> None:
        """Anything else exits with status 1."""
        from taskline.runtime import _parse_port

        with pytest.raises(SystemExit) as excinfo:
            _parse_port(value)
        assert excinfo.value.code == 1
