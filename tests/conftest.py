"""Shared fixtures for the tradesite test suite."""

import pytest
from fastapi.testclient import TestClient

from tradesite.client.cache import LocalCache
from tradesite.core.config import Settings
from tradesite.data.defaults import load_default_site_data
from tradesite.db.file_storage import FileStorage
from tradesite.main import create_app
from tradesite.models.product import Product


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path / "data",
        local_cache_dir=tmp_path / "cache",
        api_base_url="http://testserver/api",
        mongo_uri=None,
        storage_backend="file",
    )


@pytest.fixture
def storage(tmp_path):
    return FileStorage(tmp_path / "data")


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache")


@pytest.fixture
def default_doc():
    return load_default_site_data()


@pytest.fixture
def app(settings, storage):
    return create_app(settings=settings, storage=storage)


@pytest.fixture
def client(app):
    """TestClient with startup (default seeding) already run."""
    with TestClient(app) as c:
        yield c


def make_product(product_id: str, name: str = "Widget", **extra) -> Product:
    data = {
        "id": product_id,
        "sku": product_id.upper(),
        "categoryId": "hardware",
        "name": {"en": name, "zh": ""},
        "images": [f"/images/{product_id}.jpg"],
        "mainImage": f"/images/{product_id}.jpg",
    }
    data.update(extra)
    return Product.model_validate(data)
