"""Centralized dependency type aliases for FastAPI routes.

Import shared dependencies from this single module:
    from admissions.core.deps import SessionDep, SettingsDep, StoreDep
"""

from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from admissions.core.settings import Settings, get_settings
from admissions.db.engine import get_session
from admissions.db.store import DirectoryStore

# Database session
SessionDep = Annotated[Session, Depends(get_session)]

# Application settings
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_store(session: SessionDep) -> DirectoryStore:
    """Directory store bound to the request's session."""
    return DirectoryStore(session)


StoreDep = Annotated[DirectoryStore, Depends(get_store)]
