import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .api import api_availability, api_quote, api_settings
from .core.config import settings
from .core.observability import setup_logging
from .database import SessionLocal
from .utils.errors import UNPROCESSABLE_STATUS, FulfillmentError, http_error_for
from .utils.redis_cache import close_redis_client
from .utils.status_logger import register_status_listeners

setup_logging()
register_status_listeners()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_redis_client()


app = FastAPI(
    lifespan=lifespan,
    title="Therapist Fulfillment API",
    version="1.0.0",
    description="Availability, pricing and booking materialization for corporate therapist quotes.",
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)


@app.exception_handler(FulfillmentError)
async def fulfillment_exception_handler(request: Request, exc: FulfillmentError):
    """Errors that escape a route still get the error_response shape."""
    http_exc = http_error_for(exc)
    return ORJSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


def _jsonable(errors):
    # ctx may carry the raw exception object, which is not serializable
    out = []
    for err in errors:
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        out.append(err)
    return jsonable_encoder(out)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    return ORJSONResponse(
        status_code=UNPROCESSABLE_STATUS,
        content={"detail": _jsonable(errors)},
    )


@app.get("/health", tags=["health"])
def health():
    db_ok = True
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check database ping failed: %s", exc)
        db_ok = False
    code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return ORJSONResponse(
        status_code=code,
        content={"status": "ok" if db_ok else "error", "database": db_ok},
    )


api_prefix = settings.API_V1_STR

app.include_router(api_availability.router, prefix=api_prefix)
app.include_router(api_quote.router, prefix=api_prefix)
app.include_router(api_settings.router, prefix=api_prefix)
