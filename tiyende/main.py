import asyncio
from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tiyende.src import schemas, exceptions
from tiyende.src.cleaner import sweepSessions
from tiyende.src.constants import API_TITLE, API_VERSION, DB_URL, SESSION_SWEEP_INTERVAL
from tiyende.src.db import isMemoryURL, makeEngine
from tiyende.src.storage import Storage
from tiyende.api.controller import api_vendor


def createApp(storage: Storage, sweepInterval: int = SESSION_SWEEP_INTERVAL) -> FastAPI:
    """
    Build the API application around the given storage.

    The expired session sweep runs for the lifetime of the application,
    unless `sweepInterval` is 0.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = None
        if sweepInterval > 0:
            sweeper = asyncio.create_task(sweepSessions(storage, sweepInterval))
        yield
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)
    app.state.storage = storage

    # Credentialed requests need the origin echoed back instead of "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_failed(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=exceptions.ValidationFailed.status_code,
            content={"detail": jsonable_encoder(exc.errors())},
            headers=exceptions.ValidationFailed.headers,
        )

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        return JSONResponse(
            status_code=exceptions.InternalError.status_code,
            content={"detail": exceptions.InternalError.detail},
            headers=exceptions.InternalError.headers,
        )

    app.include_router(api_vendor)

    # Health check endpoint
    @app.get("/health", tags=["Health Check"], response_model=schemas.HealthStatus)
    async def health_check():
        return {"status": "OK", "version": API_VERSION}

    return app


def defaultStorage(url: str = DB_URL) -> Storage:
    """
    Storage for the configured database. An in-memory database lives only in
    this process, so its tables are created here.
    """
    storage = Storage(makeEngine(url))
    if isMemoryURL(url):
        storage.createTables()
    return storage


app = createApp(defaultStorage())
