"""Request language negotiation for user-facing response messages."""

from __future__ import annotations

from babel import negotiate_locale

DEFAULT_LANGUAGE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "zh": {
        "Validation failed": "验证失败",
        "Malformed upload request": "上传请求格式错误",
        "Upload failed": "上传失败",
    },
}

SUPPORTED_LANGUAGES = (DEFAULT_LANGUAGE, *MESSAGES)


def parse_accept_language(value: str | None) -> list[str]:
    """Return the language tags of an Accept-Language style header, best first.

    Entries with ``q=0`` or the ``*`` wildcard are dropped. Entries with an
    unparseable weight are ranked last.
    """
    if not value:
        return []

    weighted: list[tuple[float, str]] = []
    for item in value.split(","):
        tag, _, params = item.strip().partition(";")
        tag = tag.strip()
        if not tag or tag == "*":
            continue
        q = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                q = float(params[2:])
            except ValueError:
                q = 0.001
        if q <= 0:
            continue
        weighted.append((q, tag))

    # sorted() is stable, so equal weights keep header order
    return [tag for _, tag in sorted(weighted, key=lambda pair: -pair[0])]


def negotiate_language(
    language: str | None = None,
    accept_language: str | None = None,
    supported: tuple[str, ...] = SUPPORTED_LANGUAGES,
    fallback: str = DEFAULT_LANGUAGE,
) -> str:
    """Pick the response language for a request.

    An explicit ``language`` header wins over ``Accept-Language``; a regional
    tag such as ``zh-CN`` matches its base language. Falls back to
    ``fallback`` when nothing is supported.
    """
    preferred = parse_accept_language(language) + parse_accept_language(accept_language)
    match = negotiate_locale(preferred, list(supported), sep="-", aliases=None)
    return match.lower() if match else fallback


def translate(message: str, language: str) -> str:
    return MESSAGES.get(language, {}).get(message, message)
