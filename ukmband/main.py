"""
UKM Band — FastAPI application entry-point.

Run with:
    uvicorn ukmband.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

import ukmband.models  # noqa: F401
from ukmband.config import settings
from ukmband.database import Base, engine
from ukmband.exceptions import BandError

# ── Import routers ──
from ukmband.routers import auth, events, fcm, notifications, reminders, triggers

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: create tables on startup ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="UKM Band BINUS Bekasi — events, lineups, setlists and member notifications.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=("*",))


# ── Domain errors → HTTP ──
@app.exception_handler(BandError)
async def band_error_handler(request: Request, exc: BandError):
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


# ── Register API routers ──
app.include_router(auth.router)
app.include_router(reminders.router)
app.include_router(notifications.router)
app.include_router(triggers.router)
app.include_router(fcm.router)
app.include_router(events.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if settings.ENVIRONMENT != "production":

    @app.get("/mock-login/{user_id}")
    def mock_login(user_id: int):
        resp = RedirectResponse(url="/auth/me", status_code=303)
        return auth._set_auth_cookie(resp, user_id)
