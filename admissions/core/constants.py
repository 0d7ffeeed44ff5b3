"""Route prefixes, OpenAPI tags and the error responses routers advertise."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RouteConfig:
    """Prefix and tag pair for one router."""

    prefix: str
    tag: str


class Routes:
    """Mounted router groups, one per domain package."""

    AUTH = RouteConfig(prefix="/auth", tag="auth")
    USER = RouteConfig(prefix="/users", tag="users")
    INSTITUTION = RouteConfig(prefix="/institutions", tag="institutions")
    MEMBERSHIP = RouteConfig(prefix="/memberships", tag="memberships")
    HEALTH = RouteConfig(prefix="/health", tag="health")


class CommonResponses:
    """`responses=` fragments, unpacked into router and endpoint declarations."""

    UNAUTHORIZED: dict[int, dict[str, Any]] = {
        401: {"description": "Not authenticated or invalid credentials"}
    }
    FORBIDDEN: dict[int, dict[str, Any]] = {
        403: {"description": "User is inactive or lacks permissions"}
    }
    NOT_FOUND: dict[int, dict[str, Any]] = {404: {"description": "Resource not found"}}
    CONFLICT: dict[int, dict[str, Any]] = {
        409: {"description": "Resource already exists or is in the wrong state"}
    }
    BAD_REQUEST: dict[int, dict[str, Any]] = {
        400: {"description": "Invalid request data"}
    }
    UNAVAILABLE: dict[int, dict[str, Any]] = {
        503: {"description": "Directory store temporarily unavailable, safe to retry"}
    }
