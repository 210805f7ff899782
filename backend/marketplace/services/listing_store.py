"""
In-memory listing store.

Properties, investment projects and professionals are fetched once from the
backend and served from memory. Lookups never hit the backend again until
``refresh()``.
"""

from typing import Any, Dict, List, Optional
import logging
import threading

from pydantic import ValidationError

from ..exceptions import BackendError, ListingNotFoundError
from ..models.schemas import (
    FilterCriteria,
    InvestmentProject,
    ProfessionalService,
    Property,
    PublishInvestmentRequest,
    PublishPropertyRequest,
    PublishServiceRequest,
)
from ..models.state import OperationType, get_operation_type
from ..utils.helpers import slugify
from .backend_client import BackendClient
from .filter_service import filter_listings

logger = logging.getLogger(__name__)


def parse_rows(rows: List[Dict[str, Any]], model, table: str) -> list:
    """Validate backend rows, skipping the ones that do not fit the model."""
    parsed = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping invalid {table} row {row.get('id')}: {e.error_count()} errors")
    return parsed


class ListingStore:
    """
    Holds the listing collections fetched from the backend.
    """

    def __init__(self, backend: BackendClient):
        self._backend = backend
        self._lock = threading.Lock()
        self._loaded = False
        self._properties: List[Property] = []
        self._investments: List[InvestmentProject] = []
        self._professionals: List[ProfessionalService] = []

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self):
        """
        Fetch all collections. On failure the previous records stay in place.

        Raises:
            BackendError: if the backend cannot be read
        """
        try:
            properties = self._backend.select("properties", order_by="id")
            investments = self._backend.select("investment_projects", order_by="id")
            professionals = self._backend.select("professionals", order_by="id")
        except BackendError as e:
            logger.error(f"Failed to load listings: {e}")
            raise

        with self._lock:
            self._properties = parse_rows(properties, Property, "properties")
            self._investments = parse_rows(investments, InvestmentProject, "investment_projects")
            self._professionals = parse_rows(professionals, ProfessionalService, "professionals")
            self._loaded = True

        logger.info(
            f"Loaded {len(self._properties)} properties, {len(self._investments)} investment "
            f"projects, {len(self._professionals)} professionals"
        )

    def refresh(self):
        """Re-fetch every collection from the backend."""
        self.load()

    def _ensure_loaded(self):
        if not self._loaded:
            self.load()

    # ---- properties ----

    @property
    def properties(self) -> List[Property]:
        self._ensure_loaded()
        return list(self._properties)

    def get_property_by_slug(self, slug: str) -> Property:
        """
        Raises:
            ListingNotFoundError: if no property has this slug
        """
        for prop in self.properties:
            if prop.slug == slug:
                return prop
        raise ListingNotFoundError("Property", slug)

    def get_property_by_id(self, property_id: Any) -> Property:
        """
        Raises:
            ListingNotFoundError: if no property has this id
        """
        for prop in self.properties:
            if str(prop.id) == str(property_id):
                return prop
        raise ListingNotFoundError("Property", property_id)

    def find_property(self, property_id: Any) -> Optional[Property]:
        try:
            return self.get_property_by_id(property_id)
        except ListingNotFoundError:
            return None

    def properties_for_operation(self, operation: str) -> List[Property]:
        """Properties whose operation matches, case-insensitively."""
        wanted = get_operation_type(operation)
        if wanted == OperationType.UNKNOWN:
            wanted_value = (operation or "").lower()
            return [p for p in self.properties if (p.operation or "").lower() == wanted_value]
        return [p for p in self.properties if get_operation_type(p.operation) == wanted]

    def featured_properties(self) -> List[Property]:
        return [p for p in self.properties if p.featured]

    def search(self, criteria: Optional[FilterCriteria]) -> List[Property]:
        """Properties matching ``criteria``, in store order."""
        return filter_listings(self.properties, criteria)

    def add_property(self, request: PublishPropertyRequest) -> Property:
        """
        Publish a property: derive its slug, insert it, and keep it in memory.

        Raises:
            ValueError: if the title yields an empty slug
            BackendError: if the insert fails
        """
        if get_operation_type(request.operation) == OperationType.UNKNOWN:
            logger.warning(f"Publishing property with unknown operation '{request.operation}'")
        return self._publish("properties", request.title, request.model_dump(exclude_none=True), Property)

    def remove_property(self, property_id: Any) -> bool:
        """Delete a property from the backend and the store."""
        return self._remove("properties", property_id)

    def set_property_status(self, property_id: Any, status: str) -> Property:
        """
        Raises:
            ListingNotFoundError: if no property has this id
        """
        return self._set_status("properties", "Property", property_id, status, Property)

    def _publish(self, table: str, title: str, record: Dict[str, Any], model):
        slug = slugify(title)
        if not slug:
            raise ValueError("Title must contain letters or digits")
        record["slug"] = slug

        # load first: a load after the insert already holds the new row
        self._ensure_loaded()
        stored = self._backend.insert(table, record)
        item = model.model_validate(stored)

        with self._lock:
            items = self._collection(table)
            if not any(str(existing.id) == str(item.id) for existing in items):
                items.append(item)
        logger.info(f"Published {table} row {item.id} ({item.slug})")
        return item

    def _remove(self, table: str, record_id: Any) -> bool:
        deleted = self._backend.delete(table, record_id)
        with self._lock:
            items = self._collection(table)
            items[:] = [item for item in items if str(item.id) != str(record_id)]
        if deleted:
            logger.info(f"Deleted {table} row {record_id}")
        return deleted

    def _set_status(self, table: str, kind: str, record_id: Any, status: str, model):
        stored = self._backend.update(table, record_id, {"status": status})
        if stored is None:
            raise ListingNotFoundError(kind, record_id)
        item = model.model_validate(stored)
        with self._lock:
            items = self._collection(table)
            items[:] = [item if str(existing.id) == str(record_id) else existing for existing in items]
        logger.info(f"{kind} {record_id} status set to '{status}'")
        return item

    def _collection(self, table: str) -> list:
        return {
            "properties": self._properties,
            "investment_projects": self._investments,
            "professionals": self._professionals,
        }[table]

    # ---- investment projects ----

    @property
    def investments(self) -> List[InvestmentProject]:
        self._ensure_loaded()
        return list(self._investments)

    def get_investment_by_slug(self, slug: str) -> InvestmentProject:
        for project in self.investments:
            if project.slug == slug:
                return project
        raise ListingNotFoundError("Investment project", slug)

    def add_investment(self, request: PublishInvestmentRequest) -> InvestmentProject:
        """
        Publish an investment project under a slug derived from its name.

        Raises:
            ValueError: if the name yields an empty slug
        """
        record = request.model_dump(mode="json", exclude_none=True)
        return self._publish("investment_projects", request.name, record, InvestmentProject)

    def set_investment_status(self, project_id: Any, status: str) -> InvestmentProject:
        return self._set_status("investment_projects", "Investment project", project_id, status,
                                InvestmentProject)

    def remove_investment(self, project_id: Any) -> bool:
        return self._remove("investment_projects", project_id)

    # ---- professionals ----

    @property
    def professionals(self) -> List[ProfessionalService]:
        self._ensure_loaded()
        return list(self._professionals)

    def get_professional_by_slug(self, slug: str) -> ProfessionalService:
        for professional in self.professionals:
            if professional.slug == slug:
                return professional
        raise ListingNotFoundError("Professional", slug)

    def add_professional(self, request: PublishServiceRequest) -> ProfessionalService:
        """Publish a professional service under a slug derived from its name."""
        return self._publish("professionals", request.name, request.model_dump(exclude_none=True),
                             ProfessionalService)

    def remove_professional(self, professional_id: Any) -> bool:
        return self._remove("professionals", professional_id)

    def professionals_in_category(self, category_slug: Optional[str]) -> List[ProfessionalService]:
        """
        Professionals whose category matches a URL slug.

        "arquitectos-y-disenadores" matches the category "Arquitectos y disenadores".
        """
        if not category_slug:
            return self.professionals
        wanted = category_slug.replace("-", " ").strip().lower()
        return [p for p in self.professionals if (p.category or "").strip().lower() == wanted]

    def stats(self) -> Dict[str, int]:
        return {
            "properties": len(self._properties),
            "investment_projects": len(self._investments),
            "professionals": len(self._professionals),
        }
