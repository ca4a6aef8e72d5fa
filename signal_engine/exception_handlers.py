from fastapi import Request
from fastapi.responses import JSONResponse

from signal_engine.exceptions import AdapterError, AppError, InsufficientDataError, ValidationError


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": exc.code, "message": exc.message},
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": exc.code, "message": exc.message},
    )


async def insufficient_data_handler(request: Request, exc: InsufficientDataError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": exc.code,
            "message": exc.message,
            "required": exc.required,
            "available": exc.available,
        },
    )


async def adapter_error_handler(request: Request, exc: AdapterError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"error": exc.code, "message": exc.message},
    )


def register_exception_handlers(app):
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(InsufficientDataError, insufficient_data_handler)
    app.add_exception_handler(AdapterError, adapter_error_handler)
    app.add_exception_handler(AppError, app_error_handler)
