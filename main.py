import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import models  # noqa: F401  registers every table on Base.metadata
from database import Base, engine
from routes import retreat, locations, messages
from services import avatar_storage
from utils.datetime_helpers import iso, utcnow
from utils.logger import setup_api_logger

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Caravan Tracker API (Retreats, Locations, Messages, Waypoints)")

# setup file logger for API failures
api_logger = setup_api_logger()


async def _request_body(request: Request) -> str:
    try:
        body = await request.body()
    except Exception:
        body = b""
    return body.decode('utf-8', errors='replace')


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    # log request info and stacktrace
    body = await _request_body(request)
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    api_logger.error("Unhandled exception on %s %s | body=%s | error=%s\n%s",
                     request.method, request.url.path, body, str(exc), tb)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # bodies may carry phone numbers and tokens, so only the path is logged here
    api_logger.warning("HTTPException on %s %s | status=%s | detail=%s",
                       request.method, request.url.path, exc.status_code, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        field = ".".join(loc[1:]) or (loc[0] if loc else "body")
        message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        errors.setdefault(field, []).append(message)

    api_logger.warning("Validation failed on %s %s | fields=%s",
                       request.method, request.url.path, ",".join(errors))
    return JSONResponse(status_code=422, content={"error": "Validation failed", "errors": errors})


@app.get("/api/health")
def health():
    return {"status": "ok", "app": config.APP_NAME, "timestamp": iso(utcnow())}


app.include_router(retreat.router)
app.include_router(locations.router)
app.include_router(messages.router)

avatar_storage.storage_root().mkdir(parents=True, exist_ok=True)
app.mount(config.AVATAR_PUBLIC_PREFIX, StaticFiles(directory=avatar_storage.storage_root()), name="storage")
