"""
HTTP API tests for the import and health endpoints.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from campaign_builder.api import health
from campaign_builder.main import app
from campaign_builder.models.campaign import Campaign
from campaign_builder.models.base import get_db

from conftest import make_csv


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager: lifespan would initialise the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, content, filename="export.csv", **form):
    return client.post(
        "/import/editor",
        files={"file": (filename, content, "text/csv")},
        data=form,
    )


def test_root_lists_endpoints(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "import_editor_export" in response.json()["endpoints"]


def test_health_reports_database_state(client, monkeypatch):
    monkeypatch.setattr(health, "_database_ok", lambda: True)
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"

    monkeypatch.setattr(health, "_database_ok", lambda: False)
    body = client.get("/health").json()
    assert body["status"] == "degraded"


def test_status_exposes_import_settings(client):
    body = client.get("/status").json()
    assert body["imports"]["tabular_extensions"] == [".csv"]


def test_editor_upload_and_history(client):
    content = make_csv([
        {"Campaign": "Spring Sale", "Ad Group": "Shoes", "Keyword": "running shoes", "Match Type": "Exact"},
    ])
    response = _upload(client, content)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["stats"]["campaigns_created"] == 1
    assert body["stats"]["keywords_created"] == 1
    import_id = body["import_id"]

    history = client.get("/import/history").json()
    assert history["imports"][0]["id"] == import_id

    detail = client.get(f"/import/{import_id}").json()
    assert detail["import"]["status"] == "completed"


def test_editor_upload_respects_update_flag(client):
    _upload(client, make_csv([{"Campaign": "Brand", "Budget": "10"}]))
    body = _upload(client, make_csv([{"Campaign": "Brand", "Budget": "20"}]), update_existing="true").json()
    assert body["stats"]["campaigns_updated"] == 1
    assert body["stats"]["campaigns_created"] == 0


def test_editor_upload_rejects_other_file_types(client):
    response = _upload(client, b"{}", filename="export.json")
    assert response.status_code == 400


def test_editor_upload_reports_structural_failure(client):
    response = _upload(client, make_csv([{"Ad Group": "G"}]))
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["message"] == "Required column 'Campaign' not found in CSV header"


def test_snapshots_endpoint(client, engine):
    body = _upload(client, make_csv([{"Campaign": "Brand"}])).json()
    detail = client.get(f"/import/{body['import_id']}").json()
    assert detail["import"]["entities_imported"] == 1

    with Session(engine) as db:
        campaign_id = db.query(Campaign).one().id

    snapshots = client.get(f"/import/snapshots/{campaign_id}").json()["snapshots"]
    assert len(snapshots) == 1
    assert snapshots[0]["snapshot_type"] == "import"
    assert snapshots[0]["description"] == "Pre-import snapshot"


def test_unknown_import_is_404(client):
    assert client.get("/import/does-not-exist").status_code == 404


def test_performance_upload_rejects_inverted_range(client):
    response = client.post(
        "/import/performance",
        files={"file": ("perf.csv", b"Campaign,Clicks\nBrand,1\n", "text/csv")},
        data={"date_range_start": "2026-09-30", "date_range_end": "2026-09-01"},
    )
    assert response.status_code == 400
