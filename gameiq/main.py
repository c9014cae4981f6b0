"""GameIQ - FastAPI app entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gameiq.core.config import get_settings
from gameiq.core.logging import configure_logging
from gameiq.db.base import Base
from gameiq.db.session import engine, AsyncSessionLocal
from gameiq.routers import api, users
from gameiq.services.seeding import seed_question_bank

settings = get_settings()
configure_logging(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # create tables (async); production schemas come from alembic
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_catalog_on_startup:
        async with AsyncSessionLocal() as db:
            await seed_question_bank(db, settings.catalog_dir)

    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Quiz progression engine and AI usage ledger",
    lifespan=lifespan,
)

# No text generator ships with the core; deployments set one here
app.state.question_generator = None

app.include_router(users.router)
app.include_router(api.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
