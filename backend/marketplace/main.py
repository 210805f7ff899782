"""
FastAPI main application for the property marketplace.

This is the entry point for the backend API server.
"""

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from contextlib import asynccontextmanager
from typing import List, Optional
import logging

from .config import get_settings
from .exceptions import BackendError, ListingNotFoundError
from .models.schemas import (
    AdListResponse,
    AdRequest,
    AdUpdateRequest,
    Advertisement,
    AdminStats,
    ComparisonRequest,
    ComparisonResponse,
    Conversation,
    ConversationSummary,
    FavoriteResponse,
    FavoriteToggleRequest,
    FilterCriteria,
    GeoPoint,
    HealthResponse,
    InvestmentProject,
    InvestmentProjection,
    LocationReport,
    LocationResponse,
    MarkReadRequest,
    Message,
    ProfessionalService,
    Property,
    PropertyListResponse,
    PublishInvestmentRequest,
    PublishPropertyRequest,
    PublishServiceRequest,
    RoleUpdateRequest,
    SendMessageRequest,
    StartConversationRequest,
    StatusUpdateRequest,
    UserRoles,
)
from .models.state import ComparisonAddResult
from .services import (
    AppContext,
    ReportedLocationProvider,
    count_active_filters,
    create_app_context,
)
from .services.investment_service import project_for
from .utils.helpers import format_price, generate_session_id, price_per_m2
from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Settings
settings = get_settings()

COMPARISON_MESSAGES = {
    ComparisonAddResult.ADDED: "Property added to comparison",
    ComparisonAddResult.ALREADY_PRESENT: "Property is already in your comparison list",
    ComparisonAddResult.LIMIT_REACHED: "You can compare up to {limit} properties at a time",
}


def get_context(request: Request) -> AppContext:
    """Dependency returning the application context."""
    return request.app.state.context


def require_admin(
    x_user_id: Optional[str] = Header(None),
    ctx: AppContext = Depends(get_context),
) -> str:
    """Dependency rejecting callers whose X-User-Id lacks the admin role."""
    if not ctx.admin.is_admin(x_user_id):
        raise HTTPException(status_code=403, detail="Admin role required")
    return x_user_id


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        context: Prebuilt services (tests); built at startup when omitted

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler for startup/shutdown events.
        """
        # Startup
        logger.info("Starting Marketplace API...")
        logger.info(f"Version: {__version__}")

        if getattr(app.state, "context", None) is None:
            app.state.context = create_app_context(settings)

        # Fetch listings once; a failure here is retried on first request
        try:
            app.state.context.listings.load()
        except BackendError as e:
            logger.warning(f"Listing load deferred: {e}")

        logger.info("Marketplace API started successfully")

        yield

        # Shutdown
        logger.info("Shutting down Marketplace API...")
        app.state.context.sessions.cleanup_stale_sessions()

    app = FastAPI(
        title="Property Marketplace API",
        description="""
        Real-estate marketplace backend.

        Features:
        - Property, investment project and professional listings
        - Search filters
        - Favorites and side-by-side comparison
        - Geo-targeted advertisements
        - Owner/buyer messaging
        """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ListingNotFoundError)
    async def listing_not_found_handler(request: Request, exc: ListingNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError):
        logger.error(f"Backend failure on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Backend temporarily unavailable"})

    _register_routes(app)
    return app


def _register_routes(app: FastAPI):

    # ============================================================
    # Root / Health
    # ============================================================

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Property Marketplace API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(ctx: AppContext = Depends(get_context)):
        """
        Health check endpoint to verify service status.
        """
        backend_connected = ctx.backend.ping()
        return HealthResponse(
            status="healthy" if backend_connected else "degraded",
            version=__version__,
            backend_connected=backend_connected,
            listings_loaded=ctx.listings.stats()["properties"],
        )

    # ============================================================
    # Properties
    # ============================================================

    @app.get("/properties", response_model=PropertyListResponse, tags=["Properties"])
    async def search_properties(
        operation: Optional[str] = None,
        property_type: Optional[str] = Query(None, alias="propertyType"),
        location: Optional[str] = None,
        price_min: Optional[str] = Query(None, alias="priceMin"),
        price_max: Optional[str] = Query(None, alias="priceMax"),
        rooms: Optional[str] = None,
        area_min: Optional[str] = Query(None, alias="areaMin"),
        area_max: Optional[str] = Query(None, alias="areaMax"),
        amenities: Optional[List[str]] = Query(None),
        ctx: AppContext = Depends(get_context),
    ):
        """
        Search properties. Every parameter is optional; bounds are inclusive.
        """
        criteria = FilterCriteria(
            operation=operation,
            property_type=property_type,
            location=location,
            price_min=price_min,
            price_max=price_max,
            rooms=rooms,
            area_min=area_min,
            area_max=area_max,
            amenities=amenities or [],
        )
        results = ctx.listings.search(criteria)
        return PropertyListResponse(
            count=len(results),
            properties=results,
            active_filters=count_active_filters(criteria),
        )

    @app.get("/properties/buy", response_model=PropertyListResponse, tags=["Properties"])
    async def properties_for_sale(ctx: AppContext = Depends(get_context)):
        """Properties for sale."""
        results = ctx.listings.properties_for_operation("venta")
        return PropertyListResponse(count=len(results), properties=results)

    @app.get("/properties/rent", response_model=PropertyListResponse, tags=["Properties"])
    async def properties_for_rent(ctx: AppContext = Depends(get_context)):
        """Properties for rent."""
        results = ctx.listings.properties_for_operation("alquiler")
        return PropertyListResponse(count=len(results), properties=results)

    @app.get("/properties/featured", response_model=PropertyListResponse, tags=["Properties"])
    async def featured_properties(ctx: AppContext = Depends(get_context)):
        """Properties highlighted on the home page."""
        results = ctx.listings.featured_properties()
        return PropertyListResponse(count=len(results), properties=results)

    @app.get("/properties/{slug}", tags=["Properties"])
    async def get_property(slug: str, ctx: AppContext = Depends(get_context)):
        """Property detail, with its price per square meter."""
        prop = ctx.listings.get_property_by_slug(slug)
        per_m2 = price_per_m2(prop.price, prop.area)
        words = prop.price.split()
        currency = words[0] if words and words[0].isalpha() else "USD"
        return {
            "property": prop,
            "price_per_m2": per_m2,
            "price_per_m2_label": f"{format_price(per_m2, currency)}/m²" if per_m2 else None,
        }

    @app.post("/properties", response_model=Property, status_code=201, tags=["Properties"])
    async def publish_property(
        request: PublishPropertyRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """Publish a new property."""
        try:
            return ctx.listings.add_property(request)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/uploads/{bucket}/{path:path}", status_code=201, tags=["Properties"])
    async def upload_file(
        bucket: str,
        path: str,
        request: Request,
        ctx: AppContext = Depends(get_context),
    ):
        """Store a raw file body (listing photos) and return its public URL."""
        data = await request.body()
        if not data:
            raise HTTPException(status_code=400, detail="Empty upload")
        url = ctx.object_storage.upload(bucket, path, data)
        logger.info(f"Uploaded {len(data)} bytes to {bucket}/{path}")
        return {"url": url}

    @app.get("/uploads/{bucket}/{path:path}", tags=["Properties"])
    async def download_file(bucket: str, path: str, ctx: AppContext = Depends(get_context)):
        data = ctx.object_storage.download(bucket, path)
        if data is None:
            raise HTTPException(status_code=404, detail="File not found")
        return Response(content=data, media_type="application/octet-stream")

    # ============================================================
    # Investments / Professionals
    # ============================================================

    @app.get("/investments", response_model=List[InvestmentProject], tags=["Investments"])
    async def list_investments(ctx: AppContext = Depends(get_context)):
        return ctx.listings.investments

    @app.get("/investments/{slug}", response_model=InvestmentProject, tags=["Investments"])
    async def get_investment(slug: str, ctx: AppContext = Depends(get_context)):
        return ctx.listings.get_investment_by_slug(slug)

    @app.post("/investments", response_model=InvestmentProject, status_code=201, tags=["Investments"])
    async def publish_investment(
        request: PublishInvestmentRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """Publish a new investment project."""
        try:
            return ctx.listings.add_investment(request)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get(
        "/investments/{slug}/projection",
        response_model=InvestmentProjection,
        tags=["Investments"],
    )
    async def investment_projection(
        slug: str,
        amount: Optional[float] = None,
        ctx: AppContext = Depends(get_context),
    ):
        """Projected returns until delivery, compared against a fixed deposit."""
        project = ctx.listings.get_investment_by_slug(slug)
        try:
            return project_for(project, amount)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/professionals", response_model=List[ProfessionalService], tags=["Services"])
    async def list_professionals(
        category: Optional[str] = None,
        ctx: AppContext = Depends(get_context),
    ):
        return ctx.listings.professionals_in_category(category)

    @app.get("/professionals/{slug}", response_model=ProfessionalService, tags=["Services"])
    async def get_professional(slug: str, ctx: AppContext = Depends(get_context)):
        return ctx.listings.get_professional_by_slug(slug)

    @app.post("/professionals", response_model=ProfessionalService, status_code=201, tags=["Services"])
    async def publish_service(
        request: PublishServiceRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """Publish a professional service."""
        try:
            return ctx.listings.add_professional(request)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    # ============================================================
    # Favorites
    # ============================================================

    @app.get("/favorites/{session_id}", response_model=FavoriteResponse, tags=["Favorites"])
    async def get_favorites(session_id: str, ctx: AppContext = Depends(get_context)):
        """
        Get the current favorites list for a session.
        """
        session = ctx.sessions.get_or_create_session(session_id)
        favorites = session.favorites.items
        return FavoriteResponse(
            success=True,
            message=f"Found {len(favorites)} favorites",
            favorites=favorites,
        )

    @app.post("/favorites/toggle", response_model=FavoriteResponse, tags=["Favorites"])
    async def toggle_favorite(
        request: FavoriteToggleRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """
        Add a property to favorites, or remove it if already there.
        """
        session = ctx.sessions.get_or_create_session(request.session_id)

        prop = ctx.listings.find_property(request.property_id)
        if prop is None:
            prop = session.favorites.get(request.property_id)
        if prop is None:
            raise HTTPException(
                status_code=404,
                detail=f"Property {request.property_id} not found"
            )

        favorites, is_favorite = session.favorites.toggle(prop)
        return FavoriteResponse(
            success=True,
            message="Added to favorites" if is_favorite else "Removed from favorites",
            is_favorite=is_favorite,
            favorites=favorites,
        )

    @app.delete("/favorites/{session_id}", response_model=FavoriteResponse, tags=["Favorites"])
    async def clear_favorites(session_id: str, ctx: AppContext = Depends(get_context)):
        session = ctx.sessions.get_or_create_session(session_id)
        session.favorites.clear()
        return FavoriteResponse(success=True, message="Favorites cleared", favorites=[])

    # ============================================================
    # Comparison
    # ============================================================

    @app.get("/comparison/{session_id}", response_model=ComparisonResponse, tags=["Comparison"])
    async def get_comparison(session_id: str, ctx: AppContext = Depends(get_context)):
        session = ctx.sessions.get_or_create_session(session_id)
        items = session.comparison.items
        return ComparisonResponse(
            success=True,
            message=f"{len(items)} properties in comparison",
            items=items,
        )

    @app.post("/comparison", response_model=ComparisonResponse, tags=["Comparison"])
    async def add_to_comparison(
        request: ComparisonRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """
        Add a property to the comparison list. Full or duplicate additions are rejected.
        """
        session = ctx.sessions.get_or_create_session(request.session_id)
        prop = ctx.listings.get_property_by_id(request.property_id)

        result = session.comparison.add(prop)
        return ComparisonResponse(
            success=result == ComparisonAddResult.ADDED,
            message=COMPARISON_MESSAGES[result].format(limit=session.comparison.max_items),
            result=result.value,
            items=session.comparison.items,
        )

    @app.delete(
        "/comparison/{session_id}/{property_id}",
        response_model=ComparisonResponse,
        tags=["Comparison"],
    )
    async def remove_from_comparison(
        session_id: str,
        property_id: str,
        ctx: AppContext = Depends(get_context),
    ):
        session = ctx.sessions.get_or_create_session(session_id)
        removed = session.comparison.remove(property_id)
        return ComparisonResponse(
            success=removed,
            message="Property removed from comparison" if removed else "Property not in comparison",
            items=session.comparison.items,
        )

    @app.delete("/comparison/{session_id}", response_model=ComparisonResponse, tags=["Comparison"])
    async def clear_comparison(session_id: str, ctx: AppContext = Depends(get_context)):
        session = ctx.sessions.get_or_create_session(session_id)
        session.comparison.clear()
        return ComparisonResponse(success=True, message="Comparison cleared", items=[])

    # ============================================================
    # Location / Ads
    # ============================================================

    @app.post("/location/{session_id}", response_model=LocationResponse, tags=["Ads"])
    async def report_location(
        session_id: str,
        report: LocationReport,
        ctx: AppContext = Depends(get_context),
    ):
        """
        Resolve the session's location from the reported coordinates or the cache.
        """
        session = ctx.sessions.get_or_create_session(session_id)
        provider = ReportedLocationProvider(report.latitude, report.longitude, report.denied)
        location = session.location.get_location(provider)
        return LocationResponse(location=location, error=session.location.error)

    @app.get("/ads", response_model=AdListResponse, tags=["Ads"])
    async def list_ads(
        session_id: Optional[str] = None,
        latitude: Optional[float] = Query(None, ge=-90, le=90),
        longitude: Optional[float] = Query(None, ge=-180, le=180),
        placement: Optional[str] = None,
        ctx: AppContext = Depends(get_context),
    ):
        """
        Ads eligible for the caller. Without a known location every geo-targeted ad is eligible.
        """
        user_location = None
        if session_id:
            session = ctx.sessions.get_or_create_session(session_id)
            provider = None
            if latitude is not None and longitude is not None:
                provider = ReportedLocationProvider(latitude, longitude)
            user_location = session.location.get_location(provider)
        elif latitude is not None and longitude is not None:
            user_location = GeoPoint(latitude=latitude, longitude=longitude)

        eligible = ctx.ads.eligible(user_location, placement=placement)
        return AdListResponse(count=len(eligible), ads=eligible)

    # ============================================================
    # Messaging
    # ============================================================

    @app.post("/conversations", response_model=Conversation, tags=["Messages"])
    async def start_conversation(
        request: StartConversationRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """Contact the owner of a property."""
        prop = ctx.listings.get_property_by_id(request.property_id)
        try:
            return ctx.messaging.start_conversation(prop, request.interested_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/conversations", response_model=List[ConversationSummary], tags=["Messages"])
    async def list_conversations(user_id: str, ctx: AppContext = Depends(get_context)):
        """A user's inbox: conversations they own or started, with unread counts."""
        return ctx.messaging.inbox(user_id)

    @app.get(
        "/conversations/{conversation_id}/messages",
        response_model=List[Message],
        tags=["Messages"],
    )
    async def list_messages(conversation_id: str, ctx: AppContext = Depends(get_context)):
        if ctx.messaging.get_conversation(conversation_id) is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return ctx.messaging.list_messages(conversation_id)

    @app.post(
        "/conversations/{conversation_id}/messages",
        response_model=Message,
        status_code=201,
        tags=["Messages"],
    )
    async def send_message(
        conversation_id: str,
        request: SendMessageRequest,
        ctx: AppContext = Depends(get_context),
    ):
        conversation = ctx.messaging.get_conversation(conversation_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        if request.sender_id not in (conversation.owner_id, conversation.interested_id):
            raise HTTPException(status_code=403, detail="Not a participant of this conversation")
        try:
            return ctx.messaging.send_message(conversation.id, request.sender_id, request.content)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/conversations/{conversation_id}/read", tags=["Messages"])
    async def mark_read(
        conversation_id: str,
        request: MarkReadRequest,
        ctx: AppContext = Depends(get_context),
    ):
        conversation = ctx.messaging.get_conversation(conversation_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        updated = ctx.messaging.mark_read(conversation.id, request.reader_id)
        return {"conversation_id": conversation.id, "updated": updated}

    # ============================================================
    # Session / Admin
    # ============================================================

    @app.post("/session", status_code=201, tags=["Session"])
    async def create_session(ctx: AppContext = Depends(get_context)):
        """Open a new client session."""
        session = ctx.sessions.get_or_create_session(generate_session_id())
        return session.to_dict()

    @app.post("/consent/{session_id}", tags=["Session"])
    async def accept_cookies(session_id: str, ctx: AppContext = Depends(get_context)):
        session = ctx.sessions.get_or_create_session(session_id)
        session.accept_cookies()
        return {"session_id": session_id, "cookie_consent": session.cookie_consent}

    @app.delete("/session/{session_id}", tags=["Session"])
    async def delete_session(session_id: str, ctx: AppContext = Depends(get_context)):
        """
        Delete a session and all its data.
        """
        deleted = ctx.sessions.delete_session(session_id)
        return {
            "success": deleted,
            "message": "Session deleted" if deleted else "Session not found",
        }

    # ============================================================
    # Admin (X-User-Id must hold the admin role)
    # ============================================================

    admin_only = [Depends(require_admin)]

    @app.get("/admin/stats", response_model=AdminStats, tags=["Admin"], dependencies=admin_only)
    async def admin_stats(ctx: AppContext = Depends(get_context)):
        """Dashboard counts."""
        return ctx.admin.stats()

    @app.post("/admin/refresh", tags=["Admin"], dependencies=admin_only)
    async def refresh_listings(ctx: AppContext = Depends(get_context)):
        """Re-fetch every listing collection from the backend."""
        ctx.listings.refresh()
        return ctx.listings.stats()

    @app.get("/admin/ads", response_model=List[Advertisement], tags=["Admin"], dependencies=admin_only)
    async def admin_list_ads(ctx: AppContext = Depends(get_context)):
        """Every ad, paused ones included."""
        return ctx.ads.all_ads()

    @app.post(
        "/admin/ads",
        response_model=Advertisement,
        status_code=201,
        tags=["Admin"],
        dependencies=admin_only,
    )
    async def admin_create_ad(request: AdRequest, ctx: AppContext = Depends(get_context)):
        return ctx.ads.create(request)

    @app.patch("/admin/ads/{ad_id}", response_model=Advertisement, tags=["Admin"], dependencies=admin_only)
    async def admin_update_ad(
        ad_id: str,
        request: AdUpdateRequest,
        ctx: AppContext = Depends(get_context),
    ):
        return ctx.ads.update(ad_id, request)

    @app.post(
        "/admin/ads/{ad_id}/toggle",
        response_model=Advertisement,
        tags=["Admin"],
        dependencies=admin_only,
    )
    async def admin_toggle_ad(ad_id: str, ctx: AppContext = Depends(get_context)):
        """Pause a running ad or resume a paused one."""
        return ctx.ads.toggle(ad_id)

    @app.delete("/admin/ads/{ad_id}", tags=["Admin"], dependencies=admin_only)
    async def admin_delete_ad(ad_id: str, ctx: AppContext = Depends(get_context)):
        if not ctx.ads.delete(ad_id):
            raise HTTPException(status_code=404, detail=f"Advertisement '{ad_id}' not found")
        return {"success": True, "id": ad_id}

    @app.patch(
        "/admin/properties/{property_id}/status",
        response_model=Property,
        tags=["Admin"],
        dependencies=admin_only,
    )
    async def admin_property_status(
        property_id: str,
        request: StatusUpdateRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """Moderate a property (activa / inactiva)."""
        return ctx.listings.set_property_status(property_id, request.status)

    @app.delete("/admin/properties/{property_id}", tags=["Admin"], dependencies=admin_only)
    async def admin_delete_property(property_id: str, ctx: AppContext = Depends(get_context)):
        if not ctx.listings.remove_property(property_id):
            raise HTTPException(status_code=404, detail=f"Property '{property_id}' not found")
        return {"success": True, "id": property_id}

    @app.patch(
        "/admin/investments/{project_id}/status",
        response_model=InvestmentProject,
        tags=["Admin"],
        dependencies=admin_only,
    )
    async def admin_investment_status(
        project_id: str,
        request: StatusUpdateRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """Open or close an investment project (activo / inactivo)."""
        return ctx.listings.set_investment_status(project_id, request.status)

    @app.delete("/admin/investments/{project_id}", tags=["Admin"], dependencies=admin_only)
    async def admin_delete_investment(project_id: str, ctx: AppContext = Depends(get_context)):
        if not ctx.listings.remove_investment(project_id):
            raise HTTPException(status_code=404, detail=f"Investment project '{project_id}' not found")
        return {"success": True, "id": project_id}

    @app.delete("/admin/professionals/{professional_id}", tags=["Admin"], dependencies=admin_only)
    async def admin_delete_professional(professional_id: str, ctx: AppContext = Depends(get_context)):
        if not ctx.listings.remove_professional(professional_id):
            raise HTTPException(status_code=404, detail=f"Professional '{professional_id}' not found")
        return {"success": True, "id": professional_id}

    @app.get("/admin/users", response_model=List[UserRoles], tags=["Admin"], dependencies=admin_only)
    async def admin_list_users(ctx: AppContext = Depends(get_context)):
        return ctx.admin.users()

    @app.put("/admin/users/{user_id}/role", tags=["Admin"], dependencies=admin_only)
    async def admin_set_role(
        user_id: str,
        request: RoleUpdateRequest,
        ctx: AppContext = Depends(get_context),
    ):
        """Replace every role of the user with the given one."""
        ctx.admin.set_role(user_id, request.role)
        return {"user_id": user_id, "role": request.role}

    @app.get("/stats", tags=["Debug"])
    async def get_stats(ctx: AppContext = Depends(get_context)):
        """
        Get system statistics (for debugging/monitoring).
        """
        return {
            "active_sessions": ctx.sessions.get_active_session_count(),
            "listings": ctx.listings.stats(),
        }


# Create FastAPI application
app = create_app()


# ============================================================
# Run with Uvicorn (for development)
# ============================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "marketplace.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
