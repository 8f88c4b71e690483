import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import router as auth_router
from auth.tokens import TokenStore
from core import db, responses, settings as settings_module
from core.files import FileAccessor
from core.settings import Settings
from delivery import router as delivery_router
from items import router as items_router
from maintenance import router as maintenance_router
from maintenance import scheduler as maintenance_scheduler
from system import router as system_router
from users import router as users_router
from users import service as users_service

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def allowed_origins(settings: Settings) -> list[str]:
    origins = [f"https://{settings.domain}", f"http://{settings.domain}"]
    local = f"http://{settings.host}:{settings.port}"
    if local not in origins:
        origins.append(local)
    return origins


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    # Initialize the DB pool once per process.
    await db.init_pool(settings.database_url, max_size=settings.db_pool_max_size)
    scheduler = None
    try:
        await db.ensure_schema()
        await users_service.bootstrap_admin()
        scheduler = maintenance_scheduler.start_scheduler(app)
        logger.info("service_ready host=%s port=%s data_dir=%s", settings.host, settings.port, settings.data_dir)
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        await db.close_pool()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or settings_module.load()
    configure_logging(settings.log_level)

    app = FastAPI(title="spectra", lifespan=lifespan)
    app.state.settings = settings
    app.state.tokens = TokenStore()
    app.state.files = FileAccessor(settings.data_dir)

    # Browser callers are the public site and the service's own listen address.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    responses.install_exception_handlers(app)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "spectra api"}

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(users_router.router, tags=["users"])
    app.include_router(items_router.router, tags=["items"])
    app.include_router(delivery_router.api_router, tags=["delivery"])
    app.include_router(maintenance_router.router, tags=["maintenance"])
    app.include_router(system_router.router, tags=["system"])
    # Catch-all short-path resolver; must stay last.
    app.include_router(delivery_router.page_router)
    return app
