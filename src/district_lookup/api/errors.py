"""Exception handlers that turn domain errors into JSON responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from district_lookup.exceptions import DistrictLookupError


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": code, "message": message}


async def district_lookup_error_handler(request: Request, exc: DistrictLookupError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    else:
        logger.info("{} {} rejected: {}", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content=error_body("internal_error", "Internal server error")
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DistrictLookupError, district_lookup_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
