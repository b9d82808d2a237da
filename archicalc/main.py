from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from .config import settings
from .database import engine, Base
from .routers import auth, prices, user_settings, calculations, projects, shares
from .services import AppServices

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("archicalc")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)


def _run_migrations():
    """Run pending Alembic migrations on startup.

    Databases created by Base.metadata.create_all() before Alembic ran have
    no alembic_version table; the initial revision is stamped first in that case.
    """
    try:
        from alembic.config import Config
        from alembic import command
        from sqlalchemy import inspect

        alembic_ini = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        if not os.path.exists(alembic_ini):
            logger.info("alembic.ini not found, skipping migrations")
            return

        alembic_cfg = Config(alembic_ini)
        alembic_cfg.set_main_option("script_location", os.path.join(os.path.dirname(alembic_ini), "alembic"))
        alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
        alembic_cfg.attributes["skip_logging_config"] = True

        insp = inspect(engine)
        tables = insp.get_table_names()
        if "alembic_version" not in tables and "material_prices" in tables:
            logger.info("Stamping initial migration 5c1a9e0d7b21 (tables already exist)")
            command.stamp(alembic_cfg, "5c1a9e0d7b21")

        logger.info("Running pending Alembic migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")

    except Exception as e:
        # Never let migration errors prevent app startup
        logger.warning(f"Alembic migration warning: {e}")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Construction calculators — material prices, user settings, saved and shared calculations",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(auth.router, prefix="/api")
app.include_router(prices.router, prefix="/api")
app.include_router(user_settings.router, prefix="/api")
app.include_router(calculations.router, prefix="/api")
app.include_router(projects.router, prefix="/api")
app.include_router(shares.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "archicalc"}


@app.on_event("startup")
def auto_migrate():
    """Run pending Alembic migrations on startup."""
    if settings.RUN_MIGRATIONS:
        _run_migrations()


@app.on_event("startup")
def build_services():
    """Construct the service container once; routers get it via get_services."""
    app.state.services = AppServices.create()
    logger.info("Application services ready")


@app.on_event("shutdown")
def close_services():
    services = getattr(app.state, "services", None)
    if services is not None:
        services.close()
