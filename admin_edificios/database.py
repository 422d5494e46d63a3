"""Database configuration and initialization."""
import logging
import os

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = None


def _engine_options(database_uri, echo):
    """Build create_engine kwargs for SQLite (desktop) or a server database."""
    options = {'echo': echo, 'pool_pre_ping': True}

    if database_uri.startswith('sqlite'):
        options['connect_args'] = {'check_same_thread': False}
        if database_uri in ('sqlite://', 'sqlite:///:memory:'):
            options['poolclass'] = StaticPool
    else:
        options['pool_size'] = 10
        options['max_overflow'] = 20

    return options


def _ensure_sqlite_folder(database_uri):
    """Create the folder holding the SQLite file if needed."""
    prefix = 'sqlite:///'
    if not database_uri.startswith(prefix) or database_uri == 'sqlite:///:memory:':
        return
    folder = os.path.dirname(database_uri[len(prefix):])
    if folder:
        os.makedirs(folder, exist_ok=True)


def init_db(app):
    """Initialize database connection and make sure the schema exists."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    _ensure_sqlite_folder(database_uri)

    engine = create_engine(
        database_uri,
        **_engine_options(database_uri, app.config.get('SQLALCHEMY_ECHO', False))
    )

    if engine.dialect.name == 'sqlite':
        @event.listens_for(engine, 'connect')
        def _enable_foreign_keys(dbapi_connection, connection_record):
            # ON DELETE SET NULL / CASCADE only work with this pragma
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    create_schema()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_schema():
    """Create every table that does not exist yet (CREATE TABLE IF NOT EXISTS)."""
    import admin_edificios.models  # noqa: F401  (registers the mappers)

    Base.metadata.create_all(bind=engine)
    logger.info(f"[DB] Schema ready on {engine.url.render_as_string(hide_password=True)}")


def check_connection() -> bool:
    """
    Test database connectivity.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"[DB] Connection check failed: {e}")
        return False


def get_session():
    """Get database session."""
    return db_session
