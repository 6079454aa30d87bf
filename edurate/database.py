from contextlib import contextmanager
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from config.config import Config
from edurate.models.base import Base


def create_db_engine(database_url: str):
    """Create an engine; SQLite connections get a busy timeout and foreign keys"""
    is_sqlite = database_url.startswith('sqlite')
    engine = create_engine(
        database_url,
        connect_args={
            'check_same_thread': False,
            'timeout': Config.SQLITE_BUSY_TIMEOUT
        } if is_sqlite else {}
    )

    if is_sqlite:
        @event.listens_for(engine, 'connect')
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    return engine


def create_session_factory(bind):
    """Session factory used as the storage handle injected into services"""
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


# Create database engine
engine = create_db_engine(Config.DATABASE_URL)

# Create session factory
SessionLocal = create_session_factory(engine)


def init_db(bind=None):
    """Initialize database, create all tables"""
    import edurate.models  # noqa: F401  register all models
    Base.metadata.create_all(bind=bind or engine)


def drop_db(bind=None):
    """Drop all tables"""
    Base.metadata.drop_all(bind=bind or engine)


@contextmanager
def get_db(session_factory=None):
    """Provide a transactional scope for database operations"""
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
