import pytest
from fastapi.testclient import TestClient

from nightframe.api import create_app
from nightframe.errors import ComputationError, UpstreamFetchError
from nightframe.recommender import Recommender
from nightframe.recommender.catalog import DynamicCatalogCache

BASE_PARAMS = {
    "lat": 40.0,
    "lon": -75.0,
    "sensorW": 23.5,
    "sensorH": 15.6,
    "focalMm": 200,
    "fNum": 4,
    "date": "2025-01-15T02:00:00Z",
    "minAlt": 20,
}


class FailingProvider:
    source = "memory://api-failing"

    def fetch(self):
        raise UpstreamFetchError("OpenNGC fetch failed 503")


class RaisingRecommender:
    def __init__(self, exc):
        self.exc = exc

    def recommend(self, request, offline=False):
        raise self.exc


@pytest.fixture
def client(offline_config):
    return TestClient(create_app(config=offline_config))


def _params(**overrides):
    params = dict(BASE_PARAMS)
    params.update(overrides)
    return params


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_recommend_orion_scenario(client):
    response = client.get("/recommend", params=_params())
    assert response.status_code == 200
    assert "s-maxage=300" in response.headers["cache-control"]

    body = response.json()
    names = [t["name"] for t in body["recommended_targets"]]
    assert "Orion Nebula" in names
    assert body["setup"]["hemisphere"] == "northern"
    assert body["setup"]["time_basis"] == "local_from_longitude"
    assert body["metrics"]["visible_count"] == len(body["recommended_targets"])
    assert len(body["filtered_out_examples"]) <= 3

    orion = next(t for t in body["recommended_targets"] if t["name"] == "Orion Nebula")
    for key in ("id", "type", "ra_hms", "dec_dms", "fill_ratio", "framing_score", "visibility_score", "visible_hours", "score"):
        assert key in orion
    assert set(orion["suggested_capture"]) >= {"sub_exposure_s", "gain", "subs", "notes"}
    assert orion["window"]["start_utc"].endswith("Z")
    assert orion["window"]["alt_max_deg"] >= 20


def test_recommend_with_pixel_size_and_mount(client):
    response = client.get("/recommend", params=_params(pixelUm=3.76, mount="fixed", limit=5))
    assert response.status_code == 200
    body = response.json()
    assert len(body["recommended_targets"]) == 5
    capture = body["recommended_targets"][0]["suggested_capture"]
    assert capture["sub_exposure_s"] <= 10
    assert "npf_limit_s" in capture
    assert body["setup"]["mount"] == "fixed"


def test_out_of_range_latitude(client):
    response = client.get("/recommend", params=_params(lat=100))
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid query parameters"
    assert "lat" in [issue["field"] for issue in body["issues"]]


def test_missing_required_parameter(client):
    params = _params()
    del params["sensorW"]
    response = client.get("/recommend", params=params)
    assert response.status_code == 400
    assert "sensorW" in [issue["field"] for issue in response.json()["issues"]]


@pytest.mark.parametrize(
    "name,value",
    [("focalMm", 0), ("fNum", -1), ("pixelUm", 0), ("mount", "dobsonian"), ("minAlt", 90), ("limit", 0)],
)
def test_invalid_parameters_are_400(client, name, value):
    response = client.get("/recommend", params=_params(**{name: value}))
    assert response.status_code == 400
    assert name in [issue["field"] for issue in response.json()["issues"]]


def test_dynamic_failure_still_returns_curated(offline_config):
    recommender = Recommender(offline_config, dynamic_cache=DynamicCatalogCache(FailingProvider()))
    client = TestClient(create_app(config=offline_config, recommender=recommender))
    response = client.get("/recommend", params=_params())
    assert response.status_code == 200
    body = response.json()
    assert body["metrics"]["dynamic_status"] == "error"
    assert "Orion Nebula" in [t["name"] for t in body["recommended_targets"]]


def test_computation_error_is_400(offline_config):
    app = create_app(
        config=offline_config,
        recommender=RaisingRecommender(ComputationError("invalid optical configuration")),
    )
    response = TestClient(app).get("/recommend", params=_params())
    assert response.status_code == 400
    assert response.json() == {"error": "invalid optical configuration"}


def test_unexpected_error_is_500(offline_config):
    app = create_app(config=offline_config, recommender=RaisingRecommender(RuntimeError("boom")))
    response = TestClient(app, raise_server_exceptions=False).get("/recommend", params=_params())
    assert response.status_code == 500
    assert response.json() == {"error": "Internal error"}
