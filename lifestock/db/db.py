"""Schema bootstrap for the API lifespan and ``python -m lifestock.db.db``."""

from sqlalchemy.engine import Engine

from .models import Base
from .session import engine as default_engine

from lifestock.utils.logging import get_logger

logger = get_logger()


def create_tables(bind: Engine = default_engine) -> None:
    # create_all skips tables that already exist
    Base.metadata.create_all(bind)
    logger.info(f"Ensured {len(Base.metadata.tables)} tables on {bind.url.drivername}")


def reset_db(bind: Engine = default_engine) -> None:
    """Drop and recreate every lifestock table. Destroys all data."""
    logger.warning(f"Dropping all tables on {bind.url.drivername}")
    Base.metadata.drop_all(bind)
    create_tables(bind)


if __name__ == "__main__":
    reset_db()
