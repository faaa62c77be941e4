from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tootfeed import config
from tootfeed.models import Base, Setting

logger = logging.getLogger("tootfeed")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_db(url: str | None = None) -> None:
    global _engine, _session_factory
    db_url = url or config.DB_URL
    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(db_url, future=True)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    Base.metadata.create_all(_engine)
    logger.info("db_write_success event=init_db")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    if _session_factory is None:
        init_db()
    assert _session_factory is not None
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("db_write_fail")
        raise
    finally:
        session.close()


def get_setting(session: Session, key: str, default: str | None = None) -> str | None:
    row = session.execute(select(Setting).where(Setting.key == key)).scalar_one_or_none()
    if row is None:
        return default
    return row.value


def set_setting(session: Session, key: str, value: str) -> None:
    row = session.get(Setting, key)
    if row is None:
        session.add(Setting(key=key, value=value))
    else:
        row.value = value
    logger.info("db_write_success event=set_setting key=%s", key)


def delete_setting(session: Session, key: str) -> None:
    row = session.get(Setting, key)
    if row is not None:
        session.delete(row)
        logger.info("db_write_success event=delete_setting key=%s", key)
