import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from ledger_assistant.core.config import settings
from ledger_assistant.core.database import engine, Base
from ledger_assistant.core.setup_logging import setup_logging
from ledger_assistant.api.router import api_router

# Register every table on Base.metadata before create_all
from ledger_assistant.core import models  # noqa: F401

setup_logging(settings.LOG_LEVEL)


# Create tables on startup and close the engine once everything is done
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logging.info("Database tables are ready")

    yield
    await engine.dispose()


app = FastAPI(title="Ledger Assistant API", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/healthz")
async def health():
    return {"ok": True, "service": "ledger-assistant"}
