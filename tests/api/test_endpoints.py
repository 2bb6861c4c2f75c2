"""
API endpoint tests
"""

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from ingestion.collector import CollectionJob
from ingestion.publisher import EventPublisher
from ingestion.scheduler import CollectorScheduler
from ingestion.sinks import InMemoryEventSink
from tests.fakes import FakeSourceClient


@pytest.fixture
def sink():
    return InMemoryEventSink()


@pytest.fixture
def scheduler(make_source, realtime_table, sink):
    """Scheduler with one working source and one whose schedule is invalid"""
    clients = {"realtime_users": FakeSourceClient(realtime=realtime_table)}
    job = CollectionJob(client_factory=lambda cfg: clients[cfg.name])
    return CollectorScheduler(
        [make_source("realtime_users"), make_source("broken", schedule="whenever")],
        EventPublisher(sink),
        collection_job=job
    )


@pytest.fixture
def client(scheduler):
    """Create test client around an injected scheduler"""
    with TestClient(create_app(scheduler=scheduler)) as test_client:
        yield test_client


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["sources"] == "/sources"


def test_health_reports_failing_sources(client):
    """The source with an invalid schedule is not armed and counts as failing"""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["scheduler_status"] == "started"
    assert data["total_sources"] == 2
    assert data["armed_sources"] == 1
    assert data["failing_sources"] == 1
    assert data["status"] == "degraded"


def test_list_sources(client):
    response = client.get("/sources")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    states = {s["source_name"]: s for s in data["sources"]}
    assert states["realtime_users"]["status"] == "armed"
    assert states["realtime_users"]["next_run_at"] is not None
    assert states["broken"]["status"] == "idle"
    assert states["broken"]["last_error"]["error_type"] == "ScheduleError"


def test_get_source(client):
    response = client.get("/sources/realtime_users")

    assert response.status_code == 200
    assert response.json()["schedule"] == "0 0 1 1 *"
    assert response.json()["mode"] == "realtime"


def test_get_unknown_source(client):
    response = client.get("/sources/nope")

    assert response.status_code == 404


def test_manual_run(client, sink):
    response = client.post("/sources/realtime_users/run")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["records_collected"] == 2
    assert data["events_published"] == 1
    assert sink.documents[0]["FR_activeUsers"] == 3

    state = client.get("/sources/realtime_users").json()
    assert state["total_runs"] == 1
    assert state["last_records"] == 2


def test_manual_run_unknown_source(client):
    response = client.post("/sources/nope/run")

    assert response.status_code == 404


def test_shutdown_closes_sink(scheduler, sink):
    with TestClient(create_app(scheduler=scheduler)):
        pass

    assert sink.closed is True
    assert scheduler.status.value == "stopped"


def test_scheduler_not_initialized():
    app = create_app(scheduler=None)

    # no lifespan: startup never runs, so no scheduler is built
    response = TestClient(app).get("/health")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_shutdown_without_scheduler():
    """Shutdown after a failed startup leaves nothing to stop"""
    app = create_app(scheduler=None)

    await app.router.shutdown()

    assert app.state.scheduler is None
