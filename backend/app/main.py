from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.router import api_router
from app.core.config import settings
from app.db.base import Base
from app.db.session import async_session_maker, engine
from app.loader import APP_LOGGER
from app.schemas.common import ErrorResponse
from app.services.reminders import ReminderSweeper
# ВАЖНО: импортировать модели
import app.models  # noqa: F401


app = FastAPI(
    title=settings.project_name,
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(
    status_code: int,
    message: str,
    data: object | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(status_code=status_code, message=message, data=data)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = jsonable_encoder(exc.errors(), exclude={"ctx", "input", "url"})
    fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in errors)
    APP_LOGGER.warning("[validation] %s %s: %s", request.method, request.url.path, fields)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        f"Некорректные данные запроса: {fields}",
        data=errors,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    APP_LOGGER.exception("[unhandled] %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Внутренняя ошибка сервера",
    )


reminder_sweeper = ReminderSweeper(
    async_session_maker,
    interval_seconds=settings.reminder_sweep_interval_seconds,
)


@app.on_event("startup")
async def on_startup() -> None:
    """Создаёт таблицы и запускает рассылку напоминаний."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.reminder_sweep_enabled:
        reminder_sweeper.start()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await reminder_sweeper.stop()
    await engine.dispose()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Проверка доступности сервиса."""
    return {"status": "ok"}


app.include_router(api_router, prefix=settings.api_prefix)
