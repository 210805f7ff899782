"""Tests for the in-memory listing store."""

import pytest

from marketplace.exceptions import BackendError, ListingNotFoundError
from marketplace.models.schemas import (
    FilterCriteria,
    Property,
    PublishInvestmentRequest,
    PublishPropertyRequest,
    PublishServiceRequest,
)
from marketplace.services.backend_client import InMemoryBackend
from marketplace.services.listing_store import ListingStore


@pytest.fixture
def store(backend):
    store = ListingStore(backend)
    store.load()
    return store


def test_load_reads_every_collection(store):
    assert store.loaded
    assert store.stats() == {"properties": 5, "investment_projects": 1, "professionals": 2}


def test_lookup_by_slug_and_id(store):
    prop = store.get_property_by_slug("casa-nordelta-pileta")
    assert prop.id == 2
    assert store.get_property_by_id("2") == prop


def test_missing_slug_raises(store):
    with pytest.raises(ListingNotFoundError) as exc:
        store.get_property_by_slug("does-not-exist")
    assert "does-not-exist" in str(exc.value)
    assert store.find_property(999) is None


def test_properties_for_operation(store):
    assert [p.id for p in store.properties_for_operation("venta")] == [1, 2, 4, 5]
    assert [p.id for p in store.properties_for_operation("rent")] == [3]
    assert store.properties_for_operation("alquiler-temporal") == []


def test_featured(store):
    assert [p.id for p in store.featured_properties()] == [1]


def test_search_delegates_to_filters(store):
    result = store.search(FilterCriteria(operation="venta", rooms="5+"))
    assert [p.id for p in result] == [2]


def test_invalid_rows_are_skipped(seed):
    seed_backend = InMemoryBackend({"properties": [{"id": 1, "title": "no slug"}, seed["properties"][0]]})
    store = ListingStore(seed_backend)
    assert [p.id for p in store.properties] == [1]
    assert store.properties[0].slug == "departamento-3-ambientes-palermo"


def test_add_property_derives_slug(store, backend):
    request = PublishPropertyRequest(
        user_id="owner-1",
        title="Casa Nueva!! en Tigre",
        operation="venta",
        type="casa",
        location="Tigre",
        price="USD 300.000",
        area=180,
        bedrooms=3,
    )
    prop = store.add_property(request)

    assert prop.slug == "casa-nueva-en-tigre"
    assert prop.id == 6
    assert store.get_property_by_slug("casa-nueva-en-tigre") == prop
    assert backend.get("properties", 6)["user_id"] == "owner-1"


def test_add_property_rejects_title_without_slug(store):
    request = PublishPropertyRequest(
        title="¡¡!!", operation="venta", type="casa", location="x", price="1"
    )
    with pytest.raises(ValueError):
        store.add_property(request)


def test_remove_property(store):
    assert store.remove_property(1) is True
    assert store.find_property(1) is None


def test_failed_reload_keeps_previous_data(store, backend, monkeypatch):
    def broken(*args, **kwargs):
        raise BackendError("connection refused", "properties")

    monkeypatch.setattr(backend, "select", broken)
    with pytest.raises(BackendError):
        store.refresh()
    assert len(store.properties) == 5


def test_investments_and_professionals(store):
    project = store.get_investment_by_slug("torres-del-puerto")
    assert project.annual_return == 8
    with pytest.raises(ListingNotFoundError):
        store.get_investment_by_slug("nope")

    assert store.get_professional_by_slug("escribania-ruiz").category == "Escribanos"
    assert [p.id for p in store.professionals_in_category("arquitectos-y-disenadores")] == [1]
    assert len(store.professionals_in_category(None)) == 2


def test_unparsable_numbers_default_to_zero(seed):
    row = dict(seed["properties"][0], id=7, slug="sin-datos", area="N/A", bedrooms="-", bathrooms="2 baños")
    store = ListingStore(InMemoryBackend({"properties": [row]}))

    prop = store.get_property_by_slug("sin-datos")
    assert prop.area == 0
    assert prop.bedrooms == 0
    assert prop.bathrooms == 2
    assert [p.id for p in store.search(FilterCriteria(areaMax="10"))] == [7]
    assert Property.model_validate(dict(row, area="72.5", bedrooms="3")).area == 72.5


def test_publish_before_first_load_keeps_one_copy(backend):
    store = ListingStore(backend)
    assert not store.loaded

    prop = store.add_property(PublishPropertyRequest(
        title="Casa en Tigre", operation="venta", type="casa", location="Tigre", price="USD 300.000",
    ))

    assert [p.id for p in store.properties].count(prop.id) == 1
    assert len(store.properties) == 6


def test_string_ids_survive_new_inserts(seed):
    rows = [dict(row, id=f"p-{row['id']}") for row in seed["properties"]]
    store = ListingStore(InMemoryBackend({"properties": rows}))
    store.add_property(PublishPropertyRequest(
        title="Casa en Tigre", operation="venta", type="casa", location="Tigre", price="USD 300.000",
    ))

    store.refresh()
    assert len(store.properties) == 6
    assert store.properties[0].slug == "casa-en-tigre"


def test_property_status(store, backend):
    prop = store.set_property_status(2, "inactiva")
    assert prop.status == "inactiva"
    assert store.get_property_by_id(2).status == "inactiva"
    assert backend.get("properties", 2)["status"] == "inactiva"

    with pytest.raises(ListingNotFoundError):
        store.set_property_status(99, "activa")


def test_publish_and_moderate_investment(store):
    project = store.add_investment(PublishInvestmentRequest(
        name="Edificio Río", location="Rosario", min_investment=50000, annual_return=9,
        delivery_date="2031-06-01",
    ))
    assert project.slug == "edificio-rio"
    assert project.status == "activo"
    assert store.get_investment_by_slug("edificio-rio").min_investment == 50000

    assert store.set_investment_status(project.id, "inactivo").status == "inactivo"
    assert store.remove_investment(project.id) is True
    assert [p.slug for p in store.investments] == ["torres-del-puerto"]


def test_publish_and_remove_professional(store):
    professional = store.add_professional(PublishServiceRequest(
        name="Mudanzas Sur", category="Mudanzas", location="Quilmes",
    ))
    assert professional.slug == "mudanzas-sur"
    assert [p.slug for p in store.professionals_in_category("mudanzas")] == ["mudanzas-sur"]

    assert store.remove_professional(professional.id) is True
    assert store.remove_professional(professional.id) is False
    assert len(store.professionals) == 2
