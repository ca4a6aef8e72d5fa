from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signal_engine.config import settings
from signal_engine.exception_handlers import register_exception_handlers
from signal_engine.logging_config import setup_logging
from signal_engine.signals.router import router as signals_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


app = FastAPI(
    title="Signal Engine",
    description="Social and price signal analysis for equities",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(signals_router, prefix="/api/v1/signals", tags=["signals"])


@app.get("/api/v1/health")
async def health():
    return {"status": "healthy", "mode": settings.mode}
