from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy.exc import SQLAlchemyError
import logging

# Import database components
from app.database.database import engine, Base, SessionLocal, ping
from app.dependencies.dbDependecies import db_dependency

# Import middleware and error handling
from app.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.common.exceptions import ServiceUnavailableError, register_exception_handlers

# Import routers
from app.modules.categories.router import categories_router
from app.modules.products.router import product_router

# Import models for table creation
import app.modules.categories.models
import app.modules.products.models
from app.modules.products.seed_data import seed_catalog

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Catalog API",
    description="Products and categories catalog API built with FastAPI and SQLAlchemy",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "X-Page", "X-Page-Size", "Location"],
)

register_exception_handlers(app)

# Include routers
app.include_router(categories_router, prefix="/categories", tags=["Categories"])
app.include_router(product_router, tags=["Products"])

@app.get("/")
def read_root():
    return {
        "message": "Catalog API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
def health_check(db: db_dependency):
    try:
        ping(db)
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        raise ServiceUnavailableError("Base de datos no disponible") from e
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
def startup_event():
    logger.info("Catalog API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Schema creation and seed data (no migrations)
    try:
        if settings.AUTO_CREATE_TABLES:
            Base.metadata.create_all(bind=engine)
        if settings.SEED_DATA:
            db = SessionLocal()
            try:
                seed_catalog(db)
            finally:
                db.close()
    except SQLAlchemyError as e:
        logger.error(f"Database bootstrap failed: {e}")

@app.on_event("shutdown")
def shutdown_event():
    logger.info("Catalog API shutting down...")
    engine.dispose()
