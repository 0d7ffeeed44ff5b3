"""Auth domain schemas."""

from sqlmodel import Field, SQLModel

from admissions.user.schemas import UserRead


class SessionCreate(SQLModel):
    """Request schema for exchanging a Firebase ID token for a session cookie."""

    id_token: str = Field(min_length=1)


class SessionResponse(SQLModel):
    """Response after a session has been created.

    `refresh_session` tells the client its ID token carries outdated
    claims and should be force-refreshed.
    """

    user: UserRead
    created: bool
    refresh_session: bool


class AuthMessage(SQLModel):
    message: str
