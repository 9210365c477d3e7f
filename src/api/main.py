import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api import state
from api.routers import events, ops, sync, uploads
from smart_calendar.config import Settings
from smart_calendar.errors import ConfirmationError, PersistenceError
from storage import db

# Logging configuration
logging.basicConfig(
    level=Settings.from_env().log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Calendar")
app.include_router(ops.router)
app.include_router(uploads.router)
app.include_router(events.router)
app.include_router(sync.router)


@app.exception_handler(ConfirmationError)
async def confirmation_error_handler(request: Request, exc: ConfirmationError) -> JSONResponse:
    logger.info(f"Confirmation blocked [{exc.kind}]: {exc.titles}")
    return JSONResponse(status_code=422, content={"detail": str(exc), "titles": exc.titles})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error(f"Persistence failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": exc.user_message})


@app.on_event("startup")
async def startup() -> None:
    settings = Settings.from_env()
    state.init_state(settings)

    if settings.event_store == "postgres":
        await db.init_db_pool(settings.database_url)
        await db.init_schema()


@app.on_event("shutdown")
async def shutdown() -> None:
    await db.close_db_pool()
