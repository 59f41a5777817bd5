from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional, Union

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from quoteforge.core.paths import default_db_path

_ENGINES: Dict[str, Engine] = {}


def get_engine(db_path: Optional[Union[str, Path]] = None, echo: bool = False) -> Engine:
	"""Return a cached SQLAlchemy engine for the SQLite file at db_path (default: user dir)."""
	p = Path(db_path) if db_path is not None else default_db_path()
	# Use posix path for SQLAlchemy URL compatibility on Windows
	url = f"sqlite:///{p.as_posix()}"
	engine = _ENGINES.get(url)
	if engine is None:
		p.parent.mkdir(parents=True, exist_ok=True)
		engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
		_ENGINES[url] = engine
	return engine


def create_db_and_tables(engine: Optional[Engine] = None) -> Engine:
	"""Create the SQLite database file and the store table if missing."""
	# Ensure models are imported so metadata has all tables
	import quoteforge.data.models  # noqa: F401

	engine = engine or get_engine()
	SQLModel.metadata.create_all(engine)
	return engine


def get_session(engine: Optional[Engine] = None) -> Session:
	"""Create a new Session bound to engine.

	expire_on_commit=False so returned instances keep attribute values after commit.
	"""
	return Session(engine or get_engine(), expire_on_commit=False)


@contextmanager
def session_scope(engine: Optional[Engine] = None) -> Generator[Session, None, None]:
	"""Transactional scope: commit on success, rollback and re-raise on error.

	Usage:
		with session_scope(engine) as s:
			... use s ...
	"""
	session = get_session(engine)
	try:
		yield session
		session.commit()
	except Exception:
		session.rollback()
		raise
	finally:
		session.close()
