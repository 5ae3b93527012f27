from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import inspect

from island_rewards.config import settings
from island_rewards.database import engine
from island_rewards.logging_config import setup_logging
from island_rewards.middleware.logging import LoggingMiddleware
from island_rewards.middleware.rate_limit import limiter
from island_rewards.routers import challenges, rewards, withdrawals
from island_rewards.scheduler import shutdown_scheduler, start_scheduler

# Database tables are managed by Alembic migrations
# Run: alembic -c backend/alembic.ini upgrade head

REQUIRED_TABLES = {"pow_challenges", "reward_claims", "claim_attempts"}


def check_database_tables() -> None:
    """Fail fast when migrations have not been applied."""
    existing = set(inspect(engine).get_table_names())
    missing = REQUIRED_TABLES - existing
    if missing:
        raise RuntimeError(
            f"Database tables missing: {', '.join(sorted(missing))}. "
            "Run `make migrate` (alembic upgrade head) before starting the server."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the schema, then start/stop the cleanup scheduler."""
    setup_logging()
    check_database_tables()
    start_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(
    title="Island Bitcoin Rewards",
    description="Proof-of-work gated sats rewards paid out through LNURL-withdraw",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

# Added last so it wraps CORS and sees every response
app.add_middleware(LoggingMiddleware)

# Routers
app.include_router(challenges.router, prefix="/api/v1", tags=["challenges"])
app.include_router(rewards.router, prefix="/api/v1", tags=["rewards"])
app.include_router(withdrawals.router, prefix="/api/v1", tags=["withdrawals"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
