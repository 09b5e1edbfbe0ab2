from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from drivedock.config import settings
from drivedock.middleware.exceptions import register_exception_handlers
from drivedock.routers import contracts, health, sessions
from drivedock.services.record_api import lifespan

app = FastAPI(
    title="DriveDock",
    description="Driver onboarding contract dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(contracts.router, prefix="/api/contracts", tags=["contracts"])
app.include_router(sessions.router, prefix="/api/contracts", tags=["sessions"])
