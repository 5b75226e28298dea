# barbershop/db.py

import logging

from sqlmodel import SQLModel, Session, create_engine, select

from .config import DATABASE_URL, SQL_ECHO
from .data import DEFAULT_SERVICES
from .models import Service

logger = logging.getLogger(__name__)


def make_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # required for SQLite + FastAPI
    return create_engine(url, echo=echo, connect_args=connect_args)


# Engine = connection to the database
engine = make_engine()


def init_db(bind=None) -> None:
    """Create tables and seed the service catalogue if it is empty."""
    bind = bind or engine
    SQLModel.metadata.create_all(bind)
    with Session(bind) as session:
        if session.exec(select(Service)).first() is None:
            for item in DEFAULT_SERVICES:
                session.add(Service(**item))
            session.commit()
            logger.info(f"Seeded {len(DEFAULT_SERVICES)} default services")


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
