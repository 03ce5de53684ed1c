import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from db.stores import RecordNotFound, StoreError
from config import load_config, CONFIG_DIR
from routes import accounts, verses, collections, review, profile  # Import routers

logger = logging.getLogger("versecoach")

def configure_logging() -> None:
    level = load_config()["logging"]["level"]
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init config, logging and DB
    configure_logging()
    init_db()
    yield

app = FastAPI(
    title="VerseCoach",
    description="Local-first verse memorization with drip-fed collections, mastery phases and XP",
    lifespan=lifespan,
)

# Include routers
app.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
app.include_router(verses.router, prefix="/accounts", tags=["verses"])  # /accounts/{account_id}/verses
app.include_router(collections.router, prefix="/accounts", tags=["collections"])
app.include_router(review.router, prefix="/accounts", tags=["review"])
app.include_router(profile.router, prefix="/accounts", tags=["profile"])

@app.exception_handler(RecordNotFound)
async def record_not_found_handler(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    # Not retried here; the client decides whether to try again.
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage write failed"})

@app.get("/")
async def home():
    return {"app": "VerseCoach", "accounts": "/accounts/"}

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="VerseCoach App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        print(f"DB initialized and config copied to {CONFIG_DIR}/")
        exit(0)
    # Run server
    port = load_config()["app"]["port"]
    reload = args.dev
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=reload, log_level="info")
