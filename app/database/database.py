from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from app.core.config import settings
from app.common.exceptions import ServiceUnavailableError
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for the given URL.

    Server databases get a sized pool and a statement timeout so a stuck
    command is cancelled by the server instead of hanging the request.
    SQLite gets foreign key enforcement and, for in-memory databases, a
    single shared connection.
    """
    url = make_url(database_url)
    timeout = settings.DB_COMMAND_TIMEOUT

    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    connect_args = {}
    if url.get_backend_name() == "postgresql":
        connect_args = {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=timeout,
        connect_args=connect_args,
        echo=echo,
    )


engine = build_engine(settings.database_url, echo=settings.DEBUG)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

Base = declarative_base()


def get_db():
    """Sesión de base de datos por request; siempre se libera al terminar."""
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def commit_or_raise(db: Session, integrity_error: Optional[Exception] = None) -> None:
    """
    Confirma la transacción de la sesión.

    Una violación de integridad detectada por la base de datos se traduce en
    ``integrity_error`` cuando se indica; si no, se propaga tal cual. Una falla
    de conexión o timeout se traduce en un error transitorio. En todos los
    casos la transacción se revierte antes de propagar.
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error on commit: {e.orig}")
        if integrity_error is None:
            raise
        raise integrity_error from e
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        logger.error(f"Database unavailable on commit: {e}")
        raise ServiceUnavailableError("Base de datos no disponible, intente nuevamente") from e
    except SQLAlchemyError:
        db.rollback()
        raise


def ping(db: Session) -> bool:
    """Verifica que la base de datos responda."""
    db.execute(text("SELECT 1"))
    return True
