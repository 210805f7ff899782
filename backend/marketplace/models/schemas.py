"""
Pydantic schemas for listings, filter criteria and API request/response models.
"""

from typing import Optional, List, Union
from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime

from ..utils.helpers import parse_numeric


ListingId = Union[int, str]


def _to_optional_str(value):
    """Accept numbers from forms and CSV imports where strings are expected."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return value


def _to_number(value):
    """Numeric strings as floats; other free text ("N/A", "2 baños") through parse_numeric."""
    if not isinstance(value, str):
        return value
    try:
        return float(value)
    except ValueError:
        return parse_numeric(value)


class Property(BaseModel):
    """
    A property listed for sale or rent.

    Maps to the ``properties`` table. ``price`` is kept as the display
    string entered by the publisher (e.g. "USD 280.000", "ARS 350.000/mes").
    """

    id: ListingId = Field(..., description="Unique identifier of the listing")
    title: str = Field("", description="Listing title")
    slug: str = Field(..., description="Unique URL slug")
    price: str = Field("", description="Price as entered, currency included")
    location: str = Field("", description="Neighborhood, city")
    bedrooms: Optional[int] = Field(0, description="Number of bedrooms")
    bathrooms: Optional[int] = Field(0, description="Number of bathrooms")
    area: Optional[float] = Field(0, description="Covered area in m2")
    type: str = Field("", description="Property type (departamento, casa, ph...)")
    operation: str = Field("", description="venta, alquiler or alquiler-temporal")
    images: List[str] = Field(default_factory=list, description="Ordered image URLs")
    featured: bool = Field(False, description="Shown on the home page")
    description: Optional[str] = Field(None, description="Long description")
    amenities: List[str] = Field(default_factory=list, description="Amenity tags")
    latitude: Optional[float] = Field(None, description="Latitude in decimal degrees")
    longitude: Optional[float] = Field(None, description="Longitude in decimal degrees")
    user_id: Optional[str] = Field(None, description="Publisher id")
    status: Optional[str] = Field(None, description="Moderation status")

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_string(cls, value):
        return _to_optional_str(value) or ""

    @field_validator("area", mode="before")
    @classmethod
    def _area_or_zero(cls, value):
        return _to_number(value)

    @field_validator("bedrooms", "bathrooms", mode="before")
    @classmethod
    def _count_or_zero(cls, value):
        number = _to_number(value)
        return int(number) if isinstance(number, float) else number

    class Config:
        json_schema_extra = {
            "example": {
                "id": 1,
                "title": "Departamento 3 ambientes en Palermo con balcón",
                "slug": "departamento-3-ambientes-palermo",
                "price": "USD 280.000",
                "location": "Palermo, CABA",
                "bedrooms": 2,
                "bathrooms": 2,
                "area": 85,
                "type": "Departamento",
                "operation": "Venta",
                "images": ["https://images.unsplash.com/photo-1545324418-cc1a3fa10c00?w=800"],
                "featured": True,
            }
        }


class InvestmentProject(BaseModel):
    """A development project open to investors."""

    id: ListingId
    name: str
    slug: str
    location: str = ""
    status: str = ""
    delivery_date: Optional[date] = Field(None, alias="deliveryDate")
    min_investment: float = Field(0, alias="minInvestment")
    annual_return: float = Field(0, alias="annualReturn", description="Yearly return in %")
    capital_gain: float = Field(0, alias="capitalGain", description="Capital gain at delivery in %")
    images: List[str] = Field(default_factory=list)
    description: str = ""

    class Config:
        populate_by_name = True


class ProfessionalService(BaseModel):
    """A professional offering services (architects, notaries, movers...)."""

    id: ListingId
    name: str
    slug: str
    category: str = ""
    location: str = ""
    description: str = ""
    images: List[str] = Field(default_factory=list)
    rating: Optional[float] = None


Listing = Union[Property, InvestmentProject, ProfessionalService]


class FilterCriteria(BaseModel):
    """
    User-selected constraints over a listing collection.

    Every field is optional; an empty value means "no constraint". Bounds
    are inclusive. Accepts the camelCase names sent by the web client.
    """

    operation: Optional[str] = Field(None, description="venta, alquiler, alquiler-temporal or 'all'")
    property_type: Optional[str] = Field(None, alias="propertyType")
    location: Optional[str] = Field(None, description="Substring of the listing location")
    price_min: Optional[str] = Field(None, alias="priceMin")
    price_max: Optional[str] = Field(None, alias="priceMax")
    rooms: Optional[str] = Field(None, description="Exact bedrooms or 'N+'")
    area_min: Optional[str] = Field(None, alias="areaMin")
    area_max: Optional[str] = Field(None, alias="areaMax")
    amenities: List[str] = Field(default_factory=list, description="Collected, not applied")

    @field_validator("price_min", "price_max", "rooms", "area_min", "area_max", mode="before")
    @classmethod
    def _bounds_as_strings(cls, value):
        return _to_optional_str(value)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "operation": "venta",
                "propertyType": "departamento",
                "location": "palermo",
                "priceMin": "100000",
                "priceMax": "300000",
                "rooms": "2",
            }
        }


class GeoPoint(BaseModel):
    """Latitude/longitude pair in decimal degrees."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Advertisement(BaseModel):
    """An ad slot, optionally targeted to users around a point."""

    id: ListingId
    title: str
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    placement: str = Field("sidebar", description="home, sidebar, property-detail or footer")
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    clicks: int = 0
    impressions: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_km: Optional[float] = Field(None, description="Targeting radius, 50 km when unset")


class Conversation(BaseModel):
    """A chat between a property owner and an interested user."""

    id: ListingId
    property_id: ListingId
    property_title: str = ""
    owner_id: str
    interested_id: str
    created_at: Optional[datetime] = None


class Message(BaseModel):
    """A single chat message."""

    id: ListingId
    conversation_id: ListingId
    sender_id: str
    content: str
    read: bool = False
    created_at: Optional[datetime] = None


# ============================================================
# API request/response models
# ============================================================


class PropertyListResponse(BaseModel):
    """Response model for property searches."""

    count: int
    properties: List[Property] = Field(default_factory=list)
    active_filters: int = 0


class PublishPropertyRequest(BaseModel):
    """Request model for publishing a property."""

    user_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    operation: str
    type: str
    location: str
    price: str
    area: float = 0
    bedrooms: int = 0
    bathrooms: int = 0
    images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_string(cls, value):
        return _to_optional_str(value)


class PublishInvestmentRequest(BaseModel):
    """Request model for publishing an investment project."""

    user_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: str = ""
    location: str
    status: str = Field("activo", description="activo or inactivo")
    delivery_date: Optional[date] = None
    min_investment: float = Field(0, ge=0)
    annual_return: float = Field(0, description="Yearly return in %")
    capital_gain: float = Field(0, description="Capital gain at delivery in %")
    images: List[str] = Field(default_factory=list)


class PublishServiceRequest(BaseModel):
    """Request model for publishing a professional service."""

    user_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    category: str
    location: str = ""
    description: str = ""
    images: List[str] = Field(default_factory=list)


class AdRequest(BaseModel):
    """Request model for creating an ad from the back-office."""

    title: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    placement: str = "sidebar"
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius_km: Optional[float] = Field(None, gt=0)


class AdUpdateRequest(BaseModel):
    """Partial ad update; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    placement: Optional[str] = None
    is_active: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius_km: Optional[float] = Field(None, gt=0)


class StatusUpdateRequest(BaseModel):
    """Moderation status change for a listing."""

    status: str = Field(..., min_length=1)


class RoleUpdateRequest(BaseModel):
    """Replaces every role of a user with a single one."""

    role: str = Field(..., pattern="^(admin|real_estate_agent|user)$")


class UserRoles(BaseModel):
    """A registered user and the roles granted to them."""

    user_id: str
    full_name: Optional[str] = None
    roles: List[str] = Field(default_factory=list)


class ConversationSummary(Conversation):
    """A conversation in a user's inbox."""

    unread_count: int = 0
    last_message: Optional[str] = None


class FavoriteToggleRequest(BaseModel):
    """Request model for toggling a favorite."""

    session_id: str = Field(..., description="Unique session identifier")
    property_id: ListingId = Field(..., description="Property to add or remove")

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "sess_abc123",
                "property_id": 1,
            }
        }


class FavoriteResponse(BaseModel):
    """Response model for favorites operations."""

    success: bool = Field(..., description="Whether the operation was successful")
    message: str = Field(..., description="Feedback shown to the user")
    is_favorite: Optional[bool] = Field(None, description="Membership after the operation")
    favorites: List[Property] = Field(default_factory=list, description="Updated favorites list")


class ComparisonRequest(BaseModel):
    """Request model for adding a property to the comparison set."""

    session_id: str
    property_id: ListingId


class ComparisonResponse(BaseModel):
    """Response model for comparison operations."""

    success: bool
    message: str
    result: Optional[str] = Field(None, description="added, already_present or limit_reached")
    items: List[Property] = Field(default_factory=list)


class LocationReport(BaseModel):
    """Coordinates reported by the client device."""

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    denied: bool = Field(False, description="The user refused location access")


class LocationResponse(BaseModel):
    """Resolved user location, if any."""

    location: Optional[GeoPoint] = None
    error: Optional[str] = None


class AdListResponse(BaseModel):
    """Ads eligible for the caller."""

    count: int
    ads: List[Advertisement] = Field(default_factory=list)


class StartConversationRequest(BaseModel):
    """Request model for contacting a property owner."""

    property_id: ListingId
    interested_id: str


class SendMessageRequest(BaseModel):
    """Request model for sending a chat message."""

    sender_id: str
    content: str


class MarkReadRequest(BaseModel):
    """Request model for marking messages as read."""

    reader_id: str


class InvestmentProjection(BaseModel):
    """Projected returns of an investment held until delivery."""

    amount: float
    years_until_delivery: int
    yearly_return: float
    total_annual_return: float
    capital_gain_amount: float
    total_projected_value: float
    fixed_deposit_return: float
    fixed_deposit_total: float
    difference: float
    percentage_better: float
    chart: List[dict] = Field(default_factory=list)


class AdminStats(BaseModel):
    """Counts shown on the admin dashboard."""

    properties: int
    users: int
    inquiries: int


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="Application version")
    backend_connected: bool = Field(..., description="Whether the backend answered")
    listings_loaded: int = Field(0, description="Properties held in the listing store")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "backend_connected": True,
                "listings_loaded": 3,
            }
        }
