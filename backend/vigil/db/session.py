from typing import Iterator

from sqlmodel import Session, create_engine

from vigil.core.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
