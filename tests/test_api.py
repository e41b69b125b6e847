"""Tests for the FastAPI routes.

Covers:
- GET /packages, GET /packages/{name}
- PATCH /packages/{name} -- tracked flag
- POST /packages -- add from catalog
- GET /changes, DELETE /changes
- POST /runs -- manual chain run
"""
from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from pkgalerts.api.deps import get_alert_chain, get_catalog, get_db
from pkgalerts.catalog.snapshot import PackageObservation, StaticCatalogSource
from pkgalerts.core.settings import Settings
from pkgalerts.notification.subscribers import SubscriberRepository
from pkgalerts.pipeline.workflow import build_alert_chain, build_sender
from pkgalerts.tracking.registry import PackageRegistry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def catalog() -> StaticCatalogSource:
    return StaticCatalogSource([
        PackageObservation("pandas", "1.5.3", "3.8"),
        PackageObservation("scipy", "1.10.0", "3.9"),
        PackageObservation("pycaret", "3.0.0", "3.8"),
    ])


@pytest.fixture()
def client(session_factory, catalog, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """TestClient with storage, catalog and chain bound to the in-memory database."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")

    with session_factory() as db:
        PackageRegistry(db).seed(
            {k: v for k, v in catalog.snapshot().items() if k != "pycaret"},
            tracked_names=["pandas"],
        )
        SubscriberRepository(db).sync(["a@example.com"])
        db.commit()

    from pkgalerts.api.main import app

    def _override_db():
        with session_factory() as db:
            yield db
            db.commit()

    settings = Settings(ALERT_RECIPIENTS=["a@example.com"])
    chain = build_alert_chain(session_factory, catalog, build_sender(settings), settings)

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_alert_chain] = lambda: chain
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def mock_server():
    with patch("pkgalerts.notification.email_sender.smtplib.SMTP") as mock_smtp_cls:
        server = MagicMock()
        mock_smtp_cls.return_value.__enter__ = MagicMock(return_value=server)
        mock_smtp_cls.return_value.__exit__ = MagicMock(return_value=False)
        yield server


# ===========================================================================
# /packages
# ===========================================================================

class TestPackages:
    def test_list_packages(self, client):
        response = client.get("/packages")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["pandas", "scipy"]

    def test_list_tracked_only(self, client):
        response = client.get("/packages", params={"tracked": "true"})

        assert [p["name"] for p in response.json()] == ["pandas"]

    def test_get_package(self, client):
        body = client.get("/packages/pandas").json()

        assert body == {"name": "pandas", "version": "1.5.3", "runtime_version": "3.8", "tracked": True}

    def test_get_unknown_package_404(self, client):
        assert client.get("/packages/pycaret").status_code == 404

    def test_patch_tracked(self, client):
        response = client.patch("/packages/scipy", json={"tracked": True})

        assert response.status_code == 200
        assert response.json()["tracked"] is True
        changes = client.get("/changes").json()
        assert [(c["action"], c["name"]) for c in changes] == [("update", "scipy")]

    def test_patch_unknown_package_404(self, client):
        assert client.patch("/packages/pycaret", json={"tracked": True}).status_code == 404

    def test_add_from_catalog(self, client):
        response = client.post("/packages", json={"name": "pycaret"})

        assert response.status_code == 201
        assert response.json() == {
            "name": "pycaret", "version": "3.0.0", "runtime_version": "3.8", "tracked": True,
        }
        assert client.get("/packages/pycaret").status_code == 200

    def test_add_existing_package_409(self, client):
        assert client.post("/packages", json={"name": "pandas"}).status_code == 409

    def test_add_package_missing_from_catalog_404(self, client):
        assert client.post("/packages", json={"name": "left-pad"}).status_code == 404


# ===========================================================================
# /changes
# ===========================================================================

class TestChanges:
    def test_reset_changes(self, client):
        client.patch("/packages/scipy", json={"tracked": True})

        response = client.delete("/changes")

        assert response.json() == {"removed": 1}
        assert client.get("/changes").json() == []


# ===========================================================================
# /runs
# ===========================================================================

class TestRuns:
    def test_run_with_new_version_sends_alert(self, client, catalog, mock_server):
        catalog.publish(PackageObservation("pandas", "2.0.0", "3.9"))

        response = client.post("/runs")

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] is True
        assert [s["outcome"] for s in body["steps"]] == ["succeeded", "succeeded", "succeeded"]
        assert body["steps"][1]["result"]["status"] == "email(s) sent"
        assert body["steps"][1]["result"]["packages"] == ["pandas"]
        assert mock_server.sendmail.call_count == 1
        assert client.get("/packages/pandas").json()["version"] == "2.0.0"

    def test_run_without_changes_skips_alert(self, client, mock_server):
        body = client.post("/runs").json()

        assert [s["outcome"] for s in body["steps"]] == ["succeeded", "skipped", "skipped"]
        mock_server.sendmail.assert_not_called()

    def test_overlapping_run_is_rejected_and_sends_once(self, client, catalog, mock_server):
        from pkgalerts.api.main import app

        chain = app.dependency_overrides[get_alert_chain]()
        entered, release = threading.Event(), threading.Event()
        tick = chain.root.action

        def blocking_tick():
            entered.set()
            release.wait(5)
            return tick()

        chain.root.action = blocking_tick
        catalog.publish(PackageObservation("pandas", "2.0.0", "3.9"))

        first = threading.Thread(target=chain.run_once)
        first.start()
        try:
            assert entered.wait(5)

            response = client.post("/runs")

            assert response.status_code == 409
            assert "already running" in response.json()["detail"]
        finally:
            release.set()
            first.join(5)

        assert chain.last_run.succeeded
        assert mock_server.sendmail.call_count == 1

        body = client.post("/runs").json()
        assert [s["outcome"] for s in body["steps"]] == ["succeeded", "skipped", "skipped"]
        assert mock_server.sendmail.call_count == 1
