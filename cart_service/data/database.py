# cart_service/data/database.py
"""
Engine, session factory i Base.
Wszystkie modele dziedzicza z tego Base, silnik tworzy AppContext przy starcie.
"""
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from cart_service.utils.settings import (
    DATABASE_URL,
    DB_CONNECT_TIMEOUT,
    DB_POOL_TIMEOUT,
    DB_STATEMENT_TIMEOUT_MS,
)

Base = declarative_base()


def create_db_engine(url: str | None = None, **kwargs) -> Engine:
    url = url or DATABASE_URL

    if url.startswith("sqlite"):
        #sqlite: jeden plik, dostep z wielu watkow, czekamy na lock zamiast bledu
        connect_args = {"check_same_thread": False, "timeout": DB_CONNECT_TIMEOUT * 6}
        connect_args.update(kwargs.pop("connect_args", {}))
        return create_engine(url, connect_args=connect_args, **kwargs)

    return create_engine(url, **engine_options(**kwargs))


def engine_options(statement_timeout_ms: int = DB_STATEMENT_TIMEOUT_MS, **kwargs) -> dict:
    """Pool i limity czasu dla postgres: polaczenie, pula i pojedyncze zapytanie."""
    options = {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": DB_POOL_TIMEOUT,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        "connect_args": {
            "connect_timeout": DB_CONNECT_TIMEOUT,
            #zapytanie wiszace na locku konczy sie bledem zamiast blokowac watek
            "options": f"-c statement_timeout={statement_timeout_ms}",
        },
    }
    options.update(kwargs)
    return options


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_schema(engine: Engine) -> None:
    #import modeli, zeby zarejestrowaly sie w Base.metadata
    from cart_service.data import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def ping(engine: Engine) -> bool:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
