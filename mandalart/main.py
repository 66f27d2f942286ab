import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mandalart.config import settings
from mandalart.routers import changes, health, logs, nodes
from mandalart.domain.errors import ConflictError, NotFoundError, RemoteFailureError, ValidationError
from mandalart.application.event_handlers import register_event_handlers

logger = logging.getLogger(__name__)


# Register domain event handlers on startup
@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    register_event_handlers()
    yield


app = FastAPI(
    title="Mandalart API",
    description="Goal and task planning on recursive 3x3 grids",
    version=settings.VERSION,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


# Domain error handlers
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(RemoteFailureError)
async def remote_failure_handler(request: Request, exc: RemoteFailureError):
    logger.error(f"Project store failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})

# Include routers
app.include_router(health.router, tags=["Health"])  # Health check endpoints first
app.include_router(nodes.router, tags=["Nodes"])
app.include_router(changes.router, tags=["Changes"])
app.include_router(logs.router, tags=["Logs"])

@app.get("/")
async def root():
    return {"message": "Welcome to Mandalart API. See /docs for API documentation"}
