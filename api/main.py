"""Entrypoint for the hashdrop upload service"""

from __future__ import annotations

from fastapi import FastAPI

from api.middleware import AccessLogMiddleware, AllowMethodsMiddleware, RecoveryMiddleware
from api.responders import JSONResponder
from api.routes.uploads import FileUploadHandler
from core.config import Settings, settings as default_settings
from core.uploads import Responder


def create_app(settings: Settings | None = None, responder: Responder | None = None) -> FastAPI:
    settings = settings or default_settings
    config = settings.upload_configuration(responder or JSONResponder())

    app = FastAPI(
        title="hashdrop",
        version="0.1.0",
        description="Content-addressed file upload service",
    )

    # Added innermost first: access log wraps recovery so the 500 is logged too
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(AccessLogMiddleware)

    upload_handler = FileUploadHandler(config, max_files=settings.MAX_UPLOAD_FILES)
    app.add_route(
        settings.UPLOAD_ROUTE,
        AllowMethodsMiddleware(upload_handler, settings.ALLOWED_METHODS),
    )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from core.logging_config import configure_logging

    configure_logging(default_settings.LOG_LEVEL)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_config=None)
