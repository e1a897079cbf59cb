"""Tests for the HTTP API using FastAPI's TestClient."""

from unittest.mock import Mock

import httpx
import pytest
from fastapi.testclient import TestClient

from district_lookup.api import create_app
from district_lookup.api.dependencies import get_geometry_store
from district_lookup.exceptions import SpatialLookupFailure
from district_lookup.geometry import GeometryStore

ADDRESS = "2330 McCulloch Blvd, Lake Havasu City, AZ"


@pytest.fixture
def census_handler(census_match):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "geocoding.geo.census.gov":
            return httpx.Response(200, json=census_match)
        return httpx.Response(404)

    return handler


@pytest.fixture
def client(test_settings, geometry_store, census_handler) -> TestClient:
    app = create_app(
        test_settings, geometry_store=geometry_store, transport=httpx.MockTransport(census_handler)
    )
    return TestClient(app)


class TestValidateAddress:
    def test_census_scenario(self, client):
        response = client.post(
            "/api/validate-address", json={"address": ADDRESS, "methods": ["census"]}
        )

        assert response.status_code == 200
        data = response.json()
        census = data["methods"]["census"]
        assert census["success"] is True
        assert census["coordinates"] == {"lat": 34.48, "lon": -114.33}
        assert census["district"]["state"] == "AZ"
        assert census["district"]["found"] is True
        assert data["agreement"] is True
        assert data["confidencePercent"] == 90
        assert data["consensusDistrict"]["state"] == "AZ"

    def test_default_methods(self, client):
        response = client.post("/api/validate-address", json={"address": ADDRESS})

        assert response.status_code == 200
        assert list(response.json()["methods"]) == ["census"]

    @pytest.mark.parametrize("address", ["", "   ", None])
    def test_empty_address_is_400(self, client, address):
        response = client.post(
            "/api/validate-address", json={"address": address, "methods": ["census"]}
        )

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "malformed_address",
            "message": "Address is required",
        }

    def test_missing_components_is_400(self, client):
        response = client.post(
            "/api/validate-address", json={"address": "123 Main St", "methods": ["census"]}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Address must include at least street and city/state"

    def test_extra_comma_groups_are_not_an_error(self, client):
        response = client.post(
            "/api/validate-address",
            json={"address": "123 Main St, Springfield, IL 62701, Apt 4, Rear", "methods": ["census"]},
        )

        assert response.status_code == 200
        assert response.json()["parsedAddress"]["secondary"] == "Apt 4, Rear"

    def test_no_methods_is_400(self, client):
        response = client.post("/api/validate-address", json={"address": ADDRESS, "methods": []})

        assert response.status_code == 400
        assert response.json()["error"] == "no_provider_enabled"

    def test_unknown_method_is_422(self, client):
        response = client.post(
            "/api/validate-address", json={"address": ADDRESS, "methods": ["mapquest"]}
        )
        assert response.status_code == 422

    def test_structured_address(self, client):
        response = client.post(
            "/api/validate-address",
            json={
                "street": "2330 McCulloch Blvd",
                "city": "Lake Havasu City",
                "state": "az",
                "zip5": "86403",
                "methods": ["census"],
            },
        )

        assert response.status_code == 200
        assert response.json()["parsedAddress"]["state"] == "AZ"

    def test_all_providers_failed_is_200(self, test_settings, geometry_store):
        app = create_app(
            test_settings,
            geometry_store=geometry_store,
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        response = TestClient(app).post(
            "/api/validate-address", json={"address": ADDRESS, "methods": ["census", "usps"]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["confidencePercent"] == 0
        assert data["agreement"] is False
        assert data["consensusDistrict"] is None
        assert data["methods"]["census"]["rawError"] == "HTTP 503"
        assert data["methods"]["usps"]["rawError"] == "USPS API not configured"

    @pytest.mark.parametrize("body", [{"result": None}, []])
    def test_malformed_provider_body_is_200(self, test_settings, geometry_store, body):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "geocoding.geo.census.gov":
                return httpx.Response(200, json=body)
            return httpx.Response(404)

        app = create_app(
            test_settings, geometry_store=geometry_store, transport=httpx.MockTransport(handler)
        )
        response = TestClient(app).post(
            "/api/validate-address", json={"address": ADDRESS, "methods": ["census", "usps"]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["confidencePercent"] == 0
        assert data["methods"]["census"]["rawError"] == "Unexpected response from Census Geocoder"

    def test_geometry_store_down_is_503(self, test_settings, census_handler):
        store = Mock(spec=GeometryStore)
        store.contains_point.side_effect = SpatialLookupFailure(
            "District geometry store is unavailable"
        )
        app = create_app(
            test_settings, geometry_store=store, transport=httpx.MockTransport(census_handler)
        )

        response = TestClient(app).post(
            "/api/validate-address", json={"address": ADDRESS, "methods": ["census"]}
        )

        assert response.status_code == 503
        assert response.json()["error"] == "spatial_lookup_failure"


class TestClosestBoundaryPoint:
    def test_distance_units(self, client):
        response = client.post(
            "/api/closest-boundary-point",
            json={"lat": 40.7484, "lon": -73.9857, "state": "NY", "district": "12"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["closestPoint"]["type"] == "Point"
        distance = data["distance"]
        assert distance["kilometers"] == distance["meters"] / 1000
        assert distance["miles"] == distance["meters"] * 0.000621371
        assert distance["feet"] == distance["meters"] * 3.28084

    def test_unknown_district_is_404(self, client):
        response = client.post(
            "/api/closest-boundary-point",
            json={"lat": 40.7484, "lon": -73.9857, "state": "NY", "district": 40},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "district_not_found"

    def test_invalid_latitude_is_422(self, client):
        response = client.post(
            "/api/closest-boundary-point",
            json={"lat": 140.0, "lon": -73.9857, "state": "NY", "district": 12},
        )
        assert response.status_code == 422


class TestFindDistrict:
    def test_inside(self, client):
        response = client.get("/api/find-district", params={"lat": 34.48, "lon": -114.33})

        assert response.status_code == 200
        data = response.json()
        assert data["found"] is True
        assert (data["state"], data["district"]) == ("AZ", 3)
        assert data["member"]["name"] == "Jane Doe"

    def test_outside(self, client):
        response = client.get("/api/find-district", params={"lat": 30.0, "lon": -140.0})

        data = response.json()
        assert data["found"] is False
        assert data["distanceToBoundary"]["meters"] > 0
        assert data["closestBoundaryPoint"]["type"] == "Point"


class TestStatus:
    def test_validation_status(self, client):
        response = client.get("/api/validation-status")

        assert response.status_code == 200
        methods = response.json()["methods"]
        assert set(methods) == {"census", "google", "smarty", "usps"}
        assert methods["census"]["configured"] is True
        assert methods["usps"]["configured"] is False

    def test_health(self, client):
        response = client.get("/health")
        assert response.json() == {"status": "healthy", "geometryStore": "ok"}

    def test_health_degraded_with_override(self, client):
        store = Mock(spec=GeometryStore)
        store.ping.return_value = False
        client.app.dependency_overrides[get_geometry_store] = lambda: store

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "degraded", "geometryStore": "unavailable"}
