"""
End-to-end inspection flow through the HTTP API.

Admin creates a reference loaf, the packer fills in an inspection, reviews
the summary and submits it to a stubbed Bitrix24 webhook.

Run: pytest tests/test_end_to_end_inspection.py -v
"""

import pytest
from unittest.mock import patch

from config import settings, get_store, PRODUCTS_KEY
from exceptions import StorageError

from tests.conftest import _reset_singletons
from tests.factories import PNG_BYTES


BANDS = {
    "height_min": 10, "height_max": 20,
    "width_min": 10, "width_max": 20,
    "length_min": 10, "length_max": 20,
}


def _create_product(client, name: str = "Test loaf") -> dict:
    response = client.post("/api/products", data={"name": name, **BANDS})
    assert response.status_code == 201
    return response.json()


def _fill_form(client, sku: str):
    assert client.put("/api/inspection/product", json={"sku": sku}).status_code == 200
    response = client.patch("/api/inspection", json={
        "batch_number": "B100",
        "height": 12,
        "width": 12,
        "length": 25,
        "color_rating": 5,
        "crumb_rating": 4,
        "taste_rating": 5,
        "notes": "Slightly long",
    })
    assert response.status_code == 200
    client.put(
        "/api/inspection/photos/exterior",
        files={"file": ("exterior.png", PNG_BYTES, "image/png")}
    )
    client.put(
        "/api/inspection/photos/crumb",
        files={"file": ("crumb.jpg", PNG_BYTES, "image/jpeg")}
    )


class TestStartup:
    """Catalog seeding and health"""

    def test_catalog_seeded_from_bundled_data(self, test_client):
        response = test_client.get("/api/products")

        assert response.status_code == 200
        assert response.json()["total"] == 3
        assert response.json()["data"][0]["sku"] == "BRD-001"

    def test_health(self, test_client):
        body = test_client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["storage"]["backend"] == "memory"
        assert body["catalog"] == {"status": "ready"}


@pytest.fixture
def broken_seed_client(monkeypatch, tmp_path):
    """Test client whose seed file does not exist."""
    from fastapi.testclient import TestClient
    from main import app

    monkeypatch.setattr(settings, "seed_data_path", str(tmp_path / "missing.json"))
    _reset_singletons()
    with TestClient(app) as client:
        yield client
    _reset_singletons()


class TestSeedFailure:
    """Unreadable seed data blocks the API but not /health"""

    def test_api_refuses_requests(self, broken_seed_client):
        response = broken_seed_client.get("/api/products")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SEED_DATA_UNAVAILABLE"

    def test_health_reports_degraded(self, broken_seed_client):
        body = broken_seed_client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["catalog"]["code"] == "SEED_DATA_UNAVAILABLE"


@pytest.fixture
def corrupt_catalog_client():
    """Test client whose stored catalog is not a list."""
    from fastapi.testclient import TestClient
    from main import app

    _reset_singletons()
    get_store().save(PRODUCTS_KEY, {"oops": True})
    with TestClient(app) as client:
        yield client
    _reset_singletons()


class TestUnreadableCatalog:
    """A stored catalog that cannot be read is reported, never reseeded"""

    def test_api_refuses_requests(self, corrupt_catalog_client):
        response = corrupt_catalog_client.get("/api/products")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"

    def test_stored_catalog_left_untouched(self, corrupt_catalog_client):
        body = corrupt_catalog_client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["catalog"]["code"] == "STORAGE_UNAVAILABLE"
        assert get_store().load(PRODUCTS_KEY) == {"oops": True}


class TestInspectionFlow:
    """Packer flow from selection to CRM submission"""

    def test_full_submission(self, test_client, bitrix):
        # Arrange
        product = _create_product(test_client)
        assert product["sku"].startswith("PROD-")
        _fill_form(test_client, product["sku"])

        # Act: review
        summary = test_client.post("/api/inspection/summary")

        # Assert: score
        assert summary.status_code == 200
        score = summary.json()["score"]
        assert score["status"] == "passed"
        assert score["dimension_score"] == pytest.approx(11 / 3)
        assert score["average_score"] == pytest.approx((11 / 3 + 14) / 4)

        # Act: confirm
        submitted = test_client.post("/api/inspection/submit")

        # Assert: CRM calls
        assert submitted.status_code == 200
        assert submitted.json()["outcome"] == "success"
        assert submitted.json()["record_id"] == "4242"
        assert bitrix.methods == ["crm.deal.add", "crm.timeline.comment.add"]

        deal = bitrix.payload("crm.deal.add")["fields"]
        assert deal["TITLE"] == "Quality check: Test loaf - Batch #B100"
        assert deal["UF_CRM_1758475725"] == "4.42"

        files = bitrix.payload("crm.timeline.comment.add")["fields"]["FILES"]
        assert [f["fileData"][0] for f in files] == ["exterior_B100.png", "crumb_B100.jpg"]

        # Assert: form reset after success
        state = test_client.get("/api/inspection").json()
        assert state["form"]["selected_sku"] is None
        assert state["has_exterior_photo"] is False

    def test_incomplete_form_reports_first_field(self, test_client, bitrix):
        # Act
        response = test_client.post("/api/inspection/submit")

        # Assert
        assert response.status_code == 422
        details = response.json()["error"]["details"]
        assert details["first_field"] == "product"
        assert len(details["errors"]) == 10
        assert bitrix.calls == []

        form = test_client.get("/api/inspection").json()
        assert "batch_number" in form["errors"]

    def test_validate_endpoint(self, test_client):
        test_client.put("/api/inspection/product", json={"sku": "BRD-001"})

        body = test_client.post("/api/inspection/validate").json()

        assert body["valid"] is False
        assert body["first_field"] == "batch_number"
        assert "product" not in body["errors"]

    def test_crm_failure_keeps_form(self, test_client, bitrix, connection_error):
        # Arrange
        product = _create_product(test_client)
        _fill_form(test_client, product["sku"])
        bitrix.set_response("crm.deal.add", connection_error)

        # Act
        response = test_client.post("/api/inspection/submit")

        # Assert
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "CRM_ERROR"

        state = test_client.get("/api/inspection").json()
        assert state["submission"]["outcome"] == "error"
        assert state["form"]["batch_number"] == "B100"
        assert state["has_exterior_photo"] is True

        dismissed = test_client.delete("/api/inspection/submission/error").json()
        assert dismissed["outcome"] is None

    def test_non_image_photo_rejected(self, test_client):
        response = test_client.put(
            "/api/inspection/photos/exterior",
            files={"file": ("notes.txt", b"hello", "text/plain")}
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_PHOTO"

    def test_select_unknown_product(self, test_client):
        response = test_client.put("/api/inspection/product", json={"sku": "NOPE"})

        assert response.status_code == 404

    def test_reset(self, test_client):
        test_client.put("/api/inspection/product", json={"sku": "BRD-002"})

        body = test_client.post("/api/inspection/reset").json()

        assert body["form"]["selected_sku"] is None


class TestAdminFlow:
    """Catalog admin through the API"""

    def test_update_product(self, test_client):
        # Arrange
        product = _create_product(test_client)

        # Act
        response = test_client.put(
            f"/api/products/{product['sku']}",
            data={"name": "Renamed", **BANDS, "height_max": 30},
            files={"crumb_photo": ("crumb.png", PNG_BYTES, "image/png")}
        )

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Renamed"
        assert body["reference_dimensions"]["height"]["max"] == 30
        assert body["reference_photos"]["exterior"] == product["reference_photos"]["exterior"]
        assert body["reference_photos"]["crumb"].startswith("data:image/png;base64,")

    def test_min_above_max_rejected(self, test_client):
        response = test_client.post(
            "/api/products",
            data={"name": "Bad", **BANDS, "width_min": 50}
        )

        assert response.status_code == 422

    def test_delete_selected_product_clears_form(self, test_client):
        # Arrange
        product = _create_product(test_client)
        _fill_form(test_client, product["sku"])

        # Act
        response = test_client.delete(f"/api/products/{product['sku']}")

        # Assert
        assert response.status_code == 204
        state = test_client.get("/api/inspection").json()
        assert state["form"]["selected_sku"] is None
        assert state["form"]["batch_number"] == ""
        assert test_client.get(f"/api/products/{product['sku']}").status_code == 404


class TestPreferences:
    """Role preference"""

    def test_role_round_trip(self, test_client):
        assert test_client.get("/api/preferences/role").json() == {"role": "packer"}

        test_client.put("/api/preferences/role", json={"role": "admin"})

        assert test_client.get("/api/preferences/role").json() == {"role": "admin"}

    def test_unexpected_failure_returns_json_error(self, test_client):
        # Arrange
        with patch(
            "routes.preferences.get_preferences_service",
            side_effect=RuntimeError("boom")
        ):
            # Act
            response = test_client.get("/api/preferences/role")

        # Assert
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"

    def test_app_error_keeps_its_status(self, test_client):
        with patch(
            "routes.preferences.get_preferences_service",
            side_effect=StorageError("current_role", "timeout")
        ):
            response = test_client.put("/api/preferences/role", json={"role": "admin"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"
