"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project directory to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings are read at import time; pin them before any project import
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SEED_DATA_PATH"] = str(project_dir / "data" / "products.json")
os.environ["CRM_WEBHOOK_URL"] = "https://crm.test/rest/1/token/"
os.environ["CRM_TARGET"] = "deal"
os.environ["CRM_LANGUAGE"] = "en"
os.environ["FORM_RESET_DELAY_SECONDS"] = "0"

import pytest
from typing import Generator
from unittest.mock import patch

import requests

from config import InMemoryKeyValueStore, reset_store
from models.product import Product
from services.catalog_service import CatalogService
from services.inspection_service import InspectionService
from services.admin_service import AdminService
from integrations.bitrix import BitrixClient, DealTarget

from tests.factories import ProductFactory, PhotoFactory


# ===================
# MOCK BITRIX24
# ===================

class MockBitrixResponse:
    """Mock requests.Response carrying a Bitrix24 JSON body."""

    def __init__(self, body=None, status_code: int = 200):
        self._body = body
        self.status_code = status_code

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class BitrixStub:
    """
    Stand-in for the Bitrix24 webhook.

    Responses are configured per REST method; every call is recorded.
    """

    def __init__(self):
        self.responses = {
            "crm.deal.add": {"result": 4242},
            "crm.item.add": {"result": {"item": {"id": 17}}},
            "crm.timeline.comment.add": {"result": 901},
        }
        self.calls: list[tuple[str, dict]] = []

    def set_response(self, method: str, response):
        """Body dict, MockBitrixResponse, or an exception to raise."""
        self.responses[method] = response

    def post(self, url, json=None, timeout=None):
        method = url.rsplit("/", 1)[-1]
        self.calls.append((method, json))
        response = self.responses[method]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, MockBitrixResponse):
            return response
        return MockBitrixResponse(response)

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def payload(self, method: str) -> dict:
        return next(body for name, body in self.calls if name == method)


@pytest.fixture
def bitrix() -> Generator:
    """
    Patch requests.post in the Bitrix integration.

    Usage:
        def test_something(bitrix):
            bitrix.set_response("crm.deal.add", {"error": "ACCESS_DENIED"})
    """
    stub = BitrixStub()
    with patch("integrations.bitrix.requests.post", side_effect=stub.post):
        yield stub


@pytest.fixture
def bitrix_client() -> BitrixClient:
    """Deal-target client pointed at the test webhook."""
    return BitrixClient("https://crm.test/rest/1/token/", DealTarget(), timeout=5)


# ===================
# STORE AND SERVICES
# ===================

class FlakyStore(InMemoryKeyValueStore):
    """
    In-memory store whose reads of chosen keys can be made to fail.

    Usage:
        store.fail_next_reads("products", times=1)
    """

    backend = "flaky"

    def __init__(self, initial=None):
        super().__init__(initial)
        self.failing_reads: dict[str, int] = {}

    def fail_next_reads(self, key: str, times: int = 1):
        self.failing_reads[key] = times

    def _read(self, key):
        if self.failing_reads.get(key, 0) > 0:
            self.failing_reads[key] -= 1
            raise ConnectionError("storage temporarily unavailable")
        return super()._read(key)


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    """Empty in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    """Empty store with switchable read failures."""
    return FlakyStore()


@pytest.fixture
def sample_product_data() -> dict:
    """Reference product with [10, 20] on every axis."""
    return ProductFactory.create(sku="P1", name="Test loaf", low=10, high=20)


@pytest.fixture
def sample_product(sample_product_data) -> Product:
    return Product.model_validate(sample_product_data)


@pytest.fixture
def catalog(memory_store, sample_product_data) -> CatalogService:
    """Catalog holding the sample product and one other."""
    service = CatalogService(store=memory_store)
    service.save_all([
        Product.model_validate(sample_product_data),
        Product.model_validate(ProductFactory.create(sku="P2", name="Other loaf")),
    ])
    return service


@pytest.fixture
def inspection(memory_store, catalog) -> InspectionService:
    return InspectionService(store=memory_store, catalog=catalog)


@pytest.fixture
def admin(catalog, inspection) -> AdminService:
    return AdminService(
        catalog=catalog,
        inspection=inspection,
        placeholder_photo_url="https://placehold.test/none.png"
    )


@pytest.fixture
def filled_inspection(inspection) -> InspectionService:
    """Inspection with every required field for P1, all in range."""
    inspection.select_product("P1")
    inspection.update_fields({
        "batch_number": "B100",
        "height": 15,
        "width": 15,
        "length": 15,
        "color_rating": 5,
        "crumb_rating": 5,
        "taste_rating": 5,
        "notes": "Good crust",
    })
    inspection.attach_photo(*PhotoFactory.exterior())
    inspection.attach_photo(*PhotoFactory.crumb())
    return inspection


# ===================
# API TEST CLIENT
# ===================

def _reset_singletons():
    import services.catalog_service as catalog_module
    import services.inspection_service as inspection_module
    import services.admin_service as admin_module
    import services.submission_service as submission_module
    import services.preferences_service as preferences_module
    import integrations.bitrix as bitrix_module

    catalog_module._catalog_service = None
    inspection_module._inspection_service = None
    admin_module._admin_service = None
    submission_module._submission_service = None
    preferences_module._preferences_service = None
    bitrix_module._bitrix_client = None
    reset_store()


@pytest.fixture
def test_client():
    """
    FastAPI test client over a fresh in-memory store.

    The lifespan runs, so the catalog is seeded from data/products.json.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/products")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    _reset_singletons()
    with TestClient(app) as client:
        yield client
    _reset_singletons()


@pytest.fixture
def connection_error() -> Exception:
    return requests.exceptions.ConnectionError("connection refused")
