"""Multipart upload endpoint backed by the content-addressed store"""

from __future__ import annotations

import dataclasses
import logging

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from core.errors import ParseError
from core.i18n import negotiate_language
from core.uploads import UploadConfiguration, UploadedPart, process_upload

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 1000
MULTIPART_FORM = "multipart/form-data"


def media_type(content_type: str) -> str:
    """Return the lower-cased media type of a Content-Type header, without parameters."""
    return content_type.split(";", 1)[0].strip().lower()


class FileUploadHandler:
    """ASGI handler storing every file of a multipart form.

    Parsing belongs to Starlette; a body that is not a well-formed
    ``multipart/form-data`` form is reported to the responder as a
    ParseError and no part reaches the store. Storing runs in the
    threadpool since it blocks on disk I/O.
    """

    def __init__(self, config: UploadConfiguration, max_files: int = DEFAULT_MAX_FILES) -> None:
        self.config = config
        self.max_files = max_files

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        response = await self.handle(request)
        await response(scope, receive, send)

    def config_for(self, request: Request) -> UploadConfiguration:
        # Responders that translate their messages get the request's language
        with_language = getattr(self.config.responder, "with_language", None)
        if with_language is None:
            return self.config
        language = negotiate_language(
            request.headers.get("language"), request.headers.get("accept-language")
        )
        return dataclasses.replace(self.config, responder=with_language(language))

    async def handle(self, request: Request) -> Response:
        config = self.config_for(request)

        content_type = request.headers.get("content-type", "")
        if media_type(content_type) != MULTIPART_FORM:
            logger.error("Rejected upload with content type %r", content_type)
            return config.responder.on_failure(
                ParseError("request is not multipart/form-data", value=content_type or None)
            )

        try:
            form = await request.form(max_files=self.max_files)
        except (MultiPartException, HTTPException) as exc:
            message = getattr(exc, "message", None) or getattr(exc, "detail", str(exc))
            logger.error("Failed to parse multipart body: %s", message)
            return config.responder.on_failure(ParseError(message))

        try:
            parts = [
                UploadedPart(
                    field_name=name,
                    original_filename=value.filename or "",
                    byte_stream=value.file,
                )
                for name, value in form.multi_items()
                if isinstance(value, UploadFile)
            ]
            logger.debug("Upload request with %d file part(s)", len(parts))
            return await run_in_threadpool(process_upload, parts, config)
        finally:
            await form.close()
