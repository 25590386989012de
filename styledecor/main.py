# styledecor/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from styledecor.core.config import Settings, settings as default_settings
from styledecor.core.error_messages import StyleDecorError
from styledecor.database import create_client, ensure_indexes, get_database
from styledecor.models.bookings import BookingStore
from styledecor.models.decorators import DecoratorManager
from styledecor.models.services import ServiceStore
from styledecor.models.user import UserStore
from styledecor.routes.admin import admin_router
from styledecor.routes.bookings import booking_router
from styledecor.routes.decorator import decorator_router
from styledecor.routes.payments import payments_router
from styledecor.routes.services import services_router
from styledecor.routes.users import users_router
from styledecor.services.analytics import AnalyticsService
from styledecor.services.payments import PaymentReconciler
from styledecor.utils.auth_utils import build_identity_verifier
from styledecor.utils.payment_utils import StripeCheckout

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    try:
        await state.db.command("ping")
        logging.info("✅ MongoDB connected successfully.")
    except PyMongoError as e:
        logging.error("❌ MongoDB connection failed: %s", e)
        raise
    if state.settings.CREATE_INDEXES:
        await ensure_indexes(state.db)
    if state.settings.REPAIR_DECORATOR_PROFILES:
        await state.decorators.repair()
    yield
    if state.mongo_client is not None:
        state.mongo_client.close()


async def domain_error_handler(request: Request, exc: StyleDecorError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    db=None,
    identity=None,
    checkout=None,
) -> FastAPI:
    """Build the API with its stores wired onto ``app.state``.

    ``db``, ``identity`` and ``checkout`` default to MongoDB, the configured
    identity provider and Stripe; tests pass in-memory replacements.
    """
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="StyleDecor API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    mongo_client = None
    if db is None:
        mongo_client = create_client(settings)
        db = get_database(mongo_client, settings)

    state = app.state
    state.settings = settings
    state.mongo_client = mongo_client
    state.db = db
    state.identity = identity or build_identity_verifier(settings)
    state.users = UserStore(db)
    state.services = ServiceStore(db)
    state.bookings = BookingStore(
        db,
        enforce_transitions=settings.ENFORCE_STATUS_TRANSITIONS,
        allow_duplicate_pending=settings.ALLOW_DUPLICATE_PENDING_BOOKINGS,
    )
    state.decorators = DecoratorManager(db, state.users, state.bookings)
    state.analytics = AnalyticsService(db)
    state.payments = PaymentReconciler(checkout or StripeCheckout(settings), state.bookings, state.services, settings)

    app.add_exception_handler(StyleDecorError, domain_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)

    app.include_router(users_router)
    app.include_router(services_router)
    app.include_router(booking_router)
    app.include_router(admin_router)
    app.include_router(decorator_router)
    app.include_router(payments_router)

    @app.get("/")
    async def root():
        return {"message": "Hello from StyleDecor server.."}

    return app


app = create_app()
