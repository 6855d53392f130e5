"""Apply alembic revisions from inside the running application.

The app lifespan (and the integration-test fixtures) call `run_migrations`
with the live async engine, so `alembic upgrade head` happens on boot
without shelling out to the CLI.
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _alembic_config(connection: Connection) -> Config:
    cfg = Config(str(_PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    cfg.attributes["connection"] = connection
    cfg.attributes["configure_logger"] = False
    return cfg


def _upgrade(connection: Connection) -> None:
    command.upgrade(_alembic_config(connection), "head")


async def run_migrations(engine: AsyncEngine) -> None:
    """Upgrade the database to head; a failing revision aborts with its error."""
    async with engine.begin() as conn:
        await conn.run_sync(_upgrade)
    logger.info("Database schema is at head")
