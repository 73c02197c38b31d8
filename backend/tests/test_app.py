import asyncio

import pytest
from fastapi.testclient import TestClient

from backend.app import ClassAverageOut, app, get_engine, lifespan
from backend.config import get_settings
from backend.core.engine import GradesEngine
from backend.core.errors import ConfigurationError
from backend.core.models import ClassAverageResult
from backend.core.repositories import JsonRecordSource


@pytest.fixture
def client(grades_docs):
    engine = GradesEngine(repo=JsonRecordSource(grades_docs))
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "Welcome to the API."


def test_learner_avg_class(client):
    r = client.get("/grades-agg/learner/7/avg-class")
    assert r.status_code == 200
    by_class = {item["class_id"]: item["avg"] for item in r.json()}
    assert by_class[101] == pytest.approx(87.0)
    assert by_class[102] == pytest.approx(55.5)


def test_learner_avg_class_missing_exam_is_null(client):
    r = client.get("/grades-agg/learner/8/avg-class")
    assert r.status_code == 200
    assert r.json() == [{"class_id": 101, "avg": None}]


def test_learner_avg_class_not_found(client):
    r = client.get("/grades-agg/learner/999/avg-class")
    assert r.status_code == 404
    assert r.json() == {"error": "Not found"}


def test_learner_avg_class_bad_id(client):
    r = client.get("/grades-agg/learner/abc/avg-class")
    assert r.status_code == 400


def test_stats(client):
    r = client.get("/grades-agg/stats")
    assert r.status_code == 200
    assert r.json() == {
        "total_learners": 4,
        "above_threshold_count": 2,
        "above_threshold_percentage": 50.0,
        "threshold": 70.0,
        "class_id": None,
    }


def test_stats_threshold_query(client):
    r = client.get("/grades-agg/stats", params={"threshold": 89.5})
    assert r.status_code == 200
    assert r.json()["above_threshold_count"] == 2
    assert r.json()["threshold"] == 89.5


def test_class_stats(client):
    r = client.get("/grades-agg/stats/101")
    assert r.status_code == 200
    body = r.json()
    assert body["total_learners"] == 2
    assert body["above_threshold_count"] == 2
    assert body["above_threshold_percentage"] == 100.0
    assert body["class_id"] == 101


def test_class_stats_bad_id(client):
    r = client.get("/grades-agg/stats/abc")
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid class ID format"}


def test_class_stats_no_data(client):
    r = client.get("/grades-agg/stats/555")
    assert r.status_code == 404
    assert r.json() == {"error": "No data found for this class"}


def test_stats_no_data():
    app.dependency_overrides[get_engine] = lambda: GradesEngine(repo=JsonRecordSource([]))
    try:
        r = TestClient(app).get("/grades-agg/stats")
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 404


class _BrokenSource:
    def find_by_learner(self, learner_id):
        raise RuntimeError("storage down")

    find_by_class = find_by_learner

    def find_all(self):
        raise RuntimeError("storage down")


def test_unexpected_failure_is_500():
    app.dependency_overrides[get_engine] = lambda: GradesEngine(repo=_BrokenSource())
    try:
        r = TestClient(app, raise_server_exceptions=False).get("/grades-agg/stats")
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500
    assert r.text == "Seems like we messed up somewhere..."


@pytest.mark.parametrize("path", ["/grades-agg/stats", "/grades-agg/stats/101"])
@pytest.mark.parametrize("value", ["nan", "inf"])
def test_non_finite_threshold_is_bad_request(client, path, value):
    r = client.get(path, params={"threshold": value})
    assert r.status_code == 400
    assert "finite" in r.json()["error"]


def test_non_finite_average_serialised_as_null():
    assert ClassAverageOut.from_result(ClassAverageResult(101, float("inf"))).avg is None
    assert ClassAverageOut.from_result(ClassAverageResult(101, 87.0)).avg == 87.0


@pytest.fixture
def bad_weights(monkeypatch):
    monkeypatch.setenv("GRADES_WEIGHT_EXAM", "0.9")
    get_settings.cache_clear()
    get_engine.cache_clear()
    yield
    get_settings.cache_clear()
    get_engine.cache_clear()


def test_bad_weights_abort_startup(bad_weights):
    async def boot():
        async with lifespan(app):
            pass

    with pytest.raises(ConfigurationError, match="sum to 1.0"):
        asyncio.run(boot())


def test_bad_weights_are_not_blamed_on_the_client(bad_weights):
    r = TestClient(app, raise_server_exceptions=False).get("/grades-agg/stats")
    assert r.status_code == 500


def test_startup_builds_the_engine(grades_docs):
    engine = GradesEngine(repo=JsonRecordSource(grades_docs))
    calls = []

    def provide():
        calls.append(1)
        return engine

    app.dependency_overrides[get_engine] = provide
    try:
        with TestClient(app) as c:
            assert calls == [1]
            r = c.get("/grades-agg/stats")
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 200
    assert r.json()["total_learners"] == 4
