from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admissions.core.request_logging import REQUEST_ID_HEADER
from admissions.core.settings import Settings, get_settings


def add_cors_middleware(app: FastAPI, settings: Settings | None = None) -> None:
    """Allow the configured origins to call the API.

    Browsers refuse credentialed requests to a wildcard origin, so the
    session cookie is only allowed when explicit origins are configured.
    """
    settings = settings or get_settings()
    origins = settings.cors_origins_list

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )
