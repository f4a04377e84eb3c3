from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

import config

_connect_args = {}
_engine_kwargs = {}
if config.DATABASE_URL.startswith("sqlite"):
    _connect_args["check_same_thread"] = False
    if config.DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(config.DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True, **_engine_kwargs)

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
