import os
import logging
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Prefer explicit DATABASE_URL env var. If not provided, construct a local
# SQLite URL in a `data/` folder adjacent to the package directory.
env_db = os.getenv("DATABASE_URL")
if env_db:
    DATABASE_URL = env_db
else:
    pkg_root = Path(__file__).resolve().parents[1]
    data_dir = pkg_root / "data"
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        # fall back to in-memory DB if the folder cannot be created
        data_dir = None
    if data_dir:
        db_file = data_dir / "printshop.db"
        # Use POSIX path style for SQLAlchemy URL on Windows as well
        DATABASE_URL = f"sqlite:///{db_file.as_posix()}"
    else:
        DATABASE_URL = "sqlite://"


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # in-memory databases live on a single connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def create_db_and_tables():
    from . import models  # noqa: F401  register tables on Base.metadata
    logger.info("Using DATABASE_URL: %s", DATABASE_URL)
    Base.metadata.create_all(bind=engine)
