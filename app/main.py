# app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.utils.logger import setup_app_logging, get_logger
# Local application imports - Routes
from app.contracts.router import router as contract_routes


WEBHOOK_PATH = "/contracts/webhook"


class WebhookExemptCORSMiddleware(CORSMiddleware):
    """
    CORS for the browser-facing routes. The UCanSign webhook answers its own
    preflight with the webhook origin, so its paths skip this middleware.
    """

    def __init__(self, app, exempt_paths=(), **kwargs):
        super().__init__(app, **kwargs)
        self.exempt_paths = frozenset(exempt_paths)

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"] in self.exempt_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


def configure_cors(app: FastAPI, origins: list) -> None:
    """Add CORS middleware for every route except the webhook."""
    app.add_middleware(
        WebhookExemptCORSMiddleware,
        exempt_paths=(WEBHOOK_PATH,),
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Log application start and stop
    """
    logger.info("Starting application", environment=settings.environment)
    yield
    logger.info("Stopping application")


# Create the FastAPI app
contracts_app = FastAPI(
    title=f"StaffManager Contracts - {settings.environment}",
    description="StaffManager e-contract API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure logging
setup_app_logging(
    contracts_app,
    log_level=settings.log_level,
    use_json=settings.log_json or settings.environment.lower() == "production",
    log_file=settings.log_file,
    app_name="StaffManager Contracts",
    environment=settings.environment,
)
logger = get_logger(__name__)

# Add CORS middleware
configure_cors(contracts_app, settings.cors_origins)

# Include routers
contracts_app.include_router(contract_routes)


# Root API to check if the server is up
@contracts_app.get("/", tags=["Base"])
async def health_check():
    """
    Root API to check if the server is up
    """
    logger.info("Calling root API for testing")
    return {"status": "ok"}
