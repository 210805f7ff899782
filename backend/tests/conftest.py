"""Shared fixtures."""

import copy

import pytest
from fastapi.testclient import TestClient

from marketplace.config import Settings
from marketplace.main import create_app
from marketplace.models.schemas import Property
from marketplace.services.backend_client import InMemoryBackend
from marketplace.services.context import create_app_context
from marketplace.services.local_storage import LocalStorage


SEED = {
    "properties": [
        {
            "id": 1,
            "title": "Departamento 3 ambientes en Palermo",
            "slug": "departamento-3-ambientes-palermo",
            "price": "USD 280.000",
            "location": "Palermo, CABA",
            "bedrooms": 2,
            "bathrooms": 2,
            "area": 85,
            "type": "Departamento",
            "operation": "Venta",
            "featured": True,
            "user_id": "owner-1",
        },
        {
            "id": 2,
            "title": "Casa en Nordelta con pileta",
            "slug": "casa-nordelta-pileta",
            "price": "USD 450.000",
            "location": "Nordelta, Buenos Aires",
            "bedrooms": 5,
            "bathrooms": 3,
            "area": 250,
            "type": "Casa",
            "operation": "Venta",
            "user_id": "owner-2",
        },
        {
            "id": 3,
            "title": "Departamento 2 ambientes en Belgrano",
            "slug": "departamento-2-ambientes-belgrano",
            "price": "ARS 350.000/mes",
            "location": "Belgrano, CABA",
            "bedrooms": 1,
            "bathrooms": 1,
            "area": 55,
            "type": "Departamento",
            "operation": "Alquiler",
            "user_id": "owner-1",
        },
        {
            "id": 4,
            "title": "PH en Caballito",
            "slug": "ph-en-caballito",
            "price": "USD 150.000",
            "location": "Caballito, CABA",
            "bedrooms": 3,
            "bathrooms": 1,
            "area": 110,
            "type": "PH",
            "operation": "Venta",
            "user_id": "owner-2",
        },
        {
            "id": 5,
            "title": "Loft en San Telmo",
            "slug": "loft-en-san-telmo",
            "price": "USD 120.000",
            "location": "San Telmo, CABA",
            "bedrooms": 1,
            "bathrooms": 1,
            "area": 60,
            "type": "Loft",
            "operation": "Venta",
            "user_id": "owner-1",
        },
    ],
    "investment_projects": [
        {
            "id": 1,
            "name": "Torres del Puerto",
            "slug": "torres-del-puerto",
            "location": "Puerto Madero, CABA",
            "status": "En construcción",
            "deliveryDate": "2030-12-01",
            "minInvestment": 100000,
            "annualReturn": 8,
            "capitalGain": 25,
        },
    ],
    "professionals": [
        {"id": 1, "name": "Estudio Gómez", "slug": "estudio-gomez", "category": "Arquitectos y disenadores"},
        {"id": 2, "name": "Escribanía Ruiz", "slug": "escribania-ruiz", "category": "Escribanos"},
    ],
    "advertisements": [
        {"id": 1, "title": "Global ad", "placement": "sidebar", "is_active": True},
        {
            "id": 2,
            "title": "Palermo movers",
            "placement": "sidebar",
            "is_active": True,
            "latitude": -34.5889,
            "longitude": -58.4306,
            "radius_km": 10,
        },
        {"id": 3, "title": "Paused ad", "placement": "sidebar", "is_active": False},
    ],
    "profiles": [{"id": "owner-1"}, {"id": "owner-2"}, {"id": "admin-1"}],
    "user_roles": [{"id": 1, "user_id": "admin-1", "role": "admin"}],
    "property_inquiries": [{"id": 1, "property_id": 1}],
}


@pytest.fixture
def seed() -> dict:
    return copy.deepcopy(SEED)


@pytest.fixture
def backend(seed) -> InMemoryBackend:
    return InMemoryBackend(seed)


@pytest.fixture
def properties(seed) -> list[Property]:
    return [Property.model_validate(row) for row in seed["properties"]]


@pytest.fixture
def storage() -> LocalStorage:
    return LocalStorage("test-session")


@pytest.fixture
def make_property():
    def _make(**overrides) -> Property:
        data = {
            "id": 100,
            "title": "Test listing",
            "slug": "test-listing",
            "price": "USD 200.000",
            "location": "Palermo, CABA",
            "bedrooms": 2,
            "bathrooms": 1,
            "area": 70,
            "type": "Departamento",
            "operation": "Venta",
        }
        data.update(overrides)
        if "slug" not in overrides:
            data["slug"] = f"listing-{data['id']}"
        return Property.model_validate(data)

    return _make


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        BACKEND_TYPE="memory",
        SEED_DATA_PATH=tmp_path / "missing.json",
        LOCAL_STORAGE_DIR="",
    )


@pytest.fixture
def context(settings, backend):
    return create_app_context(settings, backend)


@pytest.fixture
def client(context):
    with TestClient(create_app(context)) as test_client:
        yield test_client
