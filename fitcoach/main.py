import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings as app_settings
from .database import Base, engine
from .errors import AIErrorKind, AIServiceError
from .routers import ai, calories, chat, plans


logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    AIErrorKind.SERVICE_BUSY: 503,
    AIErrorKind.AUTH_CONFIG: 500,
    AIErrorKind.QUOTA_EXCEEDED: 429,
    AIErrorKind.CONTENT_REJECTED: 422,
    AIErrorKind.MALFORMED_RESPONSE: 502,
    AIErrorKind.UNKNOWN: 502,
}

app = FastAPI(title=app_settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router)
app.include_router(calories.router)
app.include_router(plans.router)
app.include_router(ai.router)


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError) -> JSONResponse:
    logger.error(
        "AI request %s %s failed with %s: %s",
        request.method,
        request.url.path,
        exc.kind.value,
        exc.detail,
    )
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(exc.kind, 502),
        content={"detail": exc.user_message, "kind": exc.kind.value},
    )


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)


@app.get("/health", tags=["System"])
def health_check() -> dict:
    return {"status": "ok", "app": app_settings.app_name}


def run() -> None:
    uvicorn.run(app, host=app_settings.api_host, port=app_settings.api_port, log_level=app_settings.log_level.lower())


if __name__ == "__main__":
    run()
