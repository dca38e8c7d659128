"""FastAPI entry point for the affiliate desk."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from affiliate_desk import __version__
from affiliate_desk.config import configure_logging, get_settings
from affiliate_desk.database import init_db
from affiliate_desk.routers import (
    accounts,
    auth,
    categories,
    dashboard,
    files,
    incentives,
    profile,
    reports,
    sales,
    users,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    init_db()
    logger.info("Affiliate desk %s started", __version__)
    yield


app = FastAPI(title="Affiliate Desk", version=__version__, lifespan=lifespan)

app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(dashboard.router)
app.include_router(categories.router)
app.include_router(accounts.router)
app.include_router(sales.router)
app.include_router(users.router)
app.include_router(incentives.router)
app.include_router(reports.router)
app.include_router(files.router)


@app.get("/health")
def health() -> Response:
    """Simple health endpoint for load balancers and platform checks."""
    return Response(content='{"status":"ok"}', media_type="application/json")


@app.exception_handler(HTTPException)
async def http_exception_json(request: Request, exc: HTTPException):
    """Return every HTTP error as ``{"detail": ...}`` and log server-side failures."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "affiliate_desk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().is_development,
    )
