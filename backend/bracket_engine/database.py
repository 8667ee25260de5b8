"""
Engine and session helpers.

Configuration is read from the environment (a .env file is loaded first):
- DATABASE_URL: SQLAlchemy URL, default sqlite:///./tournament.db
- SQL_ECHO: true/1/yes to echo every statement
"""

import logging
import os
from pathlib import Path
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///./tournament.db"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Build an engine from explicit arguments or the environment.

    File-backed sqlite URLs get their parent directory created.
    """
    url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if echo is None:
        echo = _env_flag("SQL_ECHO")

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if ":memory:" not in url:
            Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(url, echo=echo, connect_args=connect_args)


engine: Engine = create_db_engine()


def get_session(bind: Optional[Engine] = None) -> Generator[Session, None, None]:
    """Get database session"""
    with Session(bind or engine) as session:
        yield session


def init_db(bind: Optional[Engine] = None) -> Engine:
    """Create all tables on bind (default engine) and return it"""
    # Import all models to ensure they're registered with SQLModel metadata
    from bracket_engine.models.event import Event  # noqa: F401
    from bracket_engine.models.event_log import EventLogEntry  # noqa: F401
    from bracket_engine.models.match import Match  # noqa: F401
    from bracket_engine.models.round import Round  # noqa: F401
    from bracket_engine.models.team import Team  # noqa: F401

    target = bind or engine
    SQLModel.metadata.create_all(target)
    logger.info("Schema ready on %s", target.url)
    return target
