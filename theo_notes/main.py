from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from theo_notes.api.stream import router as stream_router
from theo_notes.api.videos import router as videos_router
from theo_notes.core.logging import configure_logging
from theo_notes.db.session import get_db, init_db

configure_logging()


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    yield


app = FastAPI(title="Theo Notes API", version="0.1.0", lifespan=lifespan)
app.include_router(videos_router)
app.include_router(stream_router)


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    db_ok = False
    db: Session | None = None
    try:
        db = next(get_db())
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        db_ok = False
    finally:
        if db is not None:
            db.close()

    return HealthResponse(ok=True, service="api", version=app.version, db_ok=db_ok)
