import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api import health
from .logging_setup import setup_logging
from cafe_pos.api.routes.inventory import router as inventory_router
from cafe_pos.api.routes.menu import router as menu_router
from cafe_pos.api.routes.orders import router as orders_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("🚀 Application started")
    yield
    logger.info("🛑 Application stopped")


app = FastAPI(title="Cafe POS", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Некорректное тело или параметры запроса: 400, как и бизнес-ошибки корзины
    logger.warning("Rejected request %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())},
    )


# Подключаем роуты
app.include_router(health.router)
app.include_router(orders_router)
app.include_router(menu_router)
app.include_router(inventory_router)
