import logging
import time
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from tracker_sms.config import settings

logger = logging.getLogger(__name__)

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# check_same_thread=False is required for SQLite to work with FastAPI's threadpool
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    pool_pre_ping=True,
    echo=False,
)

if _is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE clauses unless this is set per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


# Demonstration reference data inserted by seed_db()
SEED_MODELS = [
    ("TK103", "TK103 GPS tracker - basic model"),
    ("TK102", "TK102 GPS tracker - compact model"),
    ("GT06", "GT06 GPS tracker - advanced model"),
    ("ST901", "ST901 GPS tracker - professional model"),
    ("TK303", "TK303 GPS tracker - vehicle model"),
    ("GT02A", "GT02A GPS tracker - personal model"),
]

SEED_COMMANDS = {
    "TK103": ["RESET123456", "STATUS123456", "GPRS123456", "APN123456"],
    "TK102": ["begin123456", "end123456", "check123456", "fix060s123456"],
    "GT06": ["RESET#", "STATUS#", "GPRS#", "SERVER#"],
    "ST901": ["*123456*000#", "*123456*001#", "*123456*002#", "*123456*003#"],
}

SEED_LEGACY_MESSAGES = [
    ("+5511999999999", "Welcome to SMS App!"),
    ("+5511888888888", "Your account has been created successfully."),
]


def wait_for_db(retries: int = None, delay: float = None) -> None:
    """
    Block until the database accepts connections.

    Raises the last OperationalError once all retries are used up.
    """
    retries = retries if retries is not None else settings.DB_CONNECT_RETRIES
    delay = delay if delay is not None else settings.DB_CONNECT_RETRY_DELAY_SECONDS

    for attempt in range(1, retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Connected to database")
            return
        except OperationalError as e:
            remaining = retries - attempt
            logger.warning(f"Database connection failed, retries left: {remaining}")
            if remaining == 0:
                logger.error(f"Could not connect to database: {e}")
                raise
            time.sleep(delay)


def init_db() -> None:
    """
    Initialize the database by creating all tables and indexes.
    Called during application startup; safe to run repeatedly.
    """
    logger.debug(f"Initializing database with URL: {engine.url.render_as_string(hide_password=True)}")
    try:
        # Import models to register them with Base.metadata
        from tracker_sms import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def seed_db() -> None:
    """
    Insert demonstration device models, commands and legacy messages.
    Rows that already exist are left untouched.
    """
    from tracker_sms.models import Command, DeviceModel, SmsMessage

    with SessionLocal() as db:
        existing = {m.name: m for m in db.query(DeviceModel).all()}
        for name, description in SEED_MODELS:
            if name not in existing:
                model = DeviceModel(name=name, description=description)
                db.add(model)
                existing[name] = model
        db.flush()

        for model_name, commands in SEED_COMMANDS.items():
            model = existing[model_name]
            known = {
                row.command_text
                for row in db.query(Command.command_text).filter(Command.model_id == model.id)
            }
            for command_text in commands:
                if command_text not in known:
                    db.add(Command(
                        model_id=model.id,
                        command_text=command_text,
                        description=f"Command {command_text} for {model_name}",
                    ))

        if db.query(SmsMessage.id).first() is None:
            for phone, message in SEED_LEGACY_MESSAGES:
                db.add(SmsMessage(phone=phone, message=message, sender="system"))

        db.commit()
    logger.info("Seed data applied")


def dispose_engine() -> None:
    """Close every pooled connection. Called on shutdown."""
    engine.dispose()
    logger.info("Database connections closed")


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> dict:
    """
    Run a round-trip query against the database.

    Returns:
        Dict with the server time, dialect and server version.

    Raises:
        SQLAlchemyError if the database is unreachable.
    """
    logger.debug("Checking database health...")
    with SessionLocal() as db:
        server_time = db.execute(text("SELECT CURRENT_TIMESTAMP")).scalar()

    version_info = engine.dialect.server_version_info or ()
    return {
        "status": "connected",
        "timestamp": str(server_time),
        "dialect": engine.dialect.name,
        "version": ".".join(str(part) for part in version_info) or None,
    }
