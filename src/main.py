"""FastAPI application initialization."""

import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.api import health, tenants
from src.api.errors import register_exception_handlers
from src.config import get_settings
from src.db.content_store import get_content_store
from src.db.conversation_store import get_conversation_store
from src.logging_config import redact_tokens, setup_logfire
from src.middleware.correlation_id import CorrelationIDMiddleware

APP_TITLE = "Website Chat Assistant"
APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()

    # Initialize Logfire for observability
    setup_logfire(app)

    # Initialize Sentry if DSN is provided
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            environment=settings.env,
            integrations=[FastApiIntegration()],
        )

    # Build stores up front so misconfiguration fails at startup
    app.state.content_store = get_content_store()
    app.state.conversation_store = get_conversation_store()

    logfire.info(
        "Application startup complete",
        config=redact_tokens(settings.model_dump(mode="json")),
    )

    yield

    logfire.info("Application shutdown complete")


app = FastAPI(
    title=APP_TITLE,
    description="Answers visitor questions grounded in a tenant's website content",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Correlation ID middleware (must be first for request tracing)
app.add_middleware(CorrelationIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # The chat widget is embedded on tenant sites
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routers
app.include_router(health.router, tags=["health"])
app.include_router(tenants.router, prefix="/tenants", tags=["tenants"])


@app.get("/")
def root():
    """Root endpoint."""
    settings = get_settings()
    return {
        "message": f"{APP_TITLE} API",
        "model": settings.completion_model,
        "version": APP_VERSION,
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=port, reload=os.getenv("ENV") == "local"
    )
