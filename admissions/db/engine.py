from collections.abc import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from admissions.core.settings import get_settings


def create_db_engine(database_url: str) -> Engine:
    """Engine for the directory store.

    Connections are pinged on checkout so a restarted database surfaces as
    a fresh connection instead of a failed request.
    """
    connect_args: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        # SQLite connections are shared across FastAPI's threadpool.
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
    )


engine = create_db_engine(get_settings().database_url)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
