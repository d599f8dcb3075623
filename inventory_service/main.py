import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .database import get_gateway, init_db
from .errors import InventoryError
from .log_config import configure_logging
from .routers import product_router

app = FastAPI(
    title="Inventory Service",
    description="Products, stock adjustments and low-stock reporting",
    version=__version__,
)

app.include_router(product_router.router)


@app.on_event("startup")
def _startup() -> None:
    configure_logging(get_settings())
    init_db(get_gateway())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "{} {} -> {} ({:.1f} ms)",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


def _validation_message(errors) -> str:
    err = errors[0]
    loc = tuple(err.get("loc", ()))
    if err["type"] == "json_invalid":
        return "Invalid JSON in request body"
    if loc[:2] == ("path", "product_id"):
        return "Product ID must be a positive integer"
    if loc == ("body",) and err["type"] == "missing":
        return "Request body is required"
    if err["type"] == "value_error":
        return str(err["ctx"]["error"])
    field = ".".join(str(part) for part in loc[1:])
    return f"{field}: {err['msg']}" if field else err["msg"]


@app.exception_handler(RequestValidationError)
async def _on_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _validation_message(exc.errors())})


@app.exception_handler(InventoryError)
async def _on_inventory_error(request: Request, exc: InventoryError):
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code, content={"error": exc.message}, headers=headers
    )


@app.exception_handler(StarletteHTTPException)
async def _on_http_error(request: Request, exc: StarletteHTTPException):
    # An unmatched path and an unsupported method on a known path both miss every route
    if (exc.status_code, exc.detail) in ((404, "Not Found"), (405, "Method Not Allowed")):
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def _on_unexpected_error(request: Request, exc: Exception):
    logger.opt(exception=exc).error(
        "Unhandled error on {} {}", request.method, request.url.path
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/")
def health_check():
    return {"message": "Inventory Management API is running!"}


def run() -> None:
    settings = get_settings()
    uvicorn.run("inventory_service.main:app", host=settings.host, port=settings.port)
