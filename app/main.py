import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings
from app.db import create_schema
from app.errors import DomainError
from app.logging_config import configure_logging
from app.routers import apartments, customers, invoices, notifications, rooms
from app.security.headers import install_security_headers

configure_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if settings.auto_create_schema:
        create_schema()
    yield


app = FastAPI(title='Rental Billing API', lifespan=lifespan)

install_security_headers(app)

app.include_router(apartments.router)
app.include_router(rooms.router)
app.include_router(customers.router)
app.include_router(invoices.router)
app.include_router(notifications.router)


def _envelope(status_code: int, message: str, data=None) -> JSONResponse:
    status = 'fail' if status_code < 500 else 'error'
    return JSONResponse(status_code=status_code, content={'status': status, 'message': message, 'data': data})


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.warning('%s %s failed: %s', request.method, request.url.path, exc)
    return _envelope(exc.status_code, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    errors = [
        {'field': '.'.join(str(part) for part in error['loc'] if part != 'body'), 'message': error['msg']}
        for error in exc.errors()
    ]
    return _envelope(400, 'Invalid request payload', errors)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return _envelope(500, 'Internal server error')


@app.get('/health')
def health() -> dict:
    return {'status': 'success', 'message': 'ok', 'data': None}
