"""Responders that turn upload outcomes into HTTP responses"""

from __future__ import annotations

from fastapi.responses import JSONResponse, Response

from core.errors import UploadError
from core.i18n import DEFAULT_LANGUAGE, translate


class DefaultResponder:
    """Empty 200 on success, empty 500 on any failure."""

    def on_success(self, names: list[str]) -> Response:
        return Response(status_code=200)

    def on_failure(self, error: Exception) -> Response:
        return Response(status_code=500)


class JSONResponder:
    """Lists stored paths on success; maps client errors to 400.

    Storage failures become a generic 500 body so no filesystem detail
    leaks to the client. The ``detail`` of failure bodies is translated to
    ``language``.
    """

    def __init__(self, language: str = DEFAULT_LANGUAGE) -> None:
        self.language = language

    def with_language(self, language: str) -> JSONResponder:
        return JSONResponder(language)

    def on_success(self, names: list[str]) -> JSONResponse:
        return JSONResponse(status_code=200, content={"files": names})

    def on_failure(self, error: Exception) -> JSONResponse:
        headers = {"Content-Language": self.language}
        if isinstance(error, UploadError):
            body = error.to_response_body()
            body["detail"] = translate(body["detail"], self.language)
            return JSONResponse(status_code=400, content=body, headers=headers)
        return JSONResponse(
            status_code=500,
            content={"detail": translate("Upload failed", self.language)},
            headers=headers,
        )
