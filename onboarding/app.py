"""
Application lifecycle for the onboarding automation backend.

The HTTP layer calls startup() once before serving and shutdown() on exit.
"""

import logging
import sys

from config import settings
from .automation.config import AutomationConfig
from .automation.engine import AutomationEngine, init_automation_engine
from .database.connection import init_database, close_database
from .integrations.email import EmailClient
from .utils.background_tasks import drain_background_tasks

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


async def startup() -> AutomationEngine:
    """Configure logging, connect the database and build the engine."""
    configure_logging()
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")

    try:
        if await init_database():
            logger.info("PostgreSQL database initialized")
        else:
            logger.warning("PostgreSQL not configured or failed to initialize")
    except Exception as e:
        logger.warning(f"PostgreSQL init failed: {e}")

    email = EmailClient.from_settings(settings)
    if not email.enabled:
        logger.warning("RESEND_API_KEY not set, automation emails will be skipped")

    engine = init_automation_engine(
        config=AutomationConfig.from_settings(settings),
        email=email,
    )
    logger.info("Startup complete")
    return engine


async def shutdown() -> None:
    """Let background automations finish, then close the database."""
    logger.info("Shutting down...")

    try:
        await drain_background_tasks()
    except Exception as e:
        logger.warning(f"Failed to drain background tasks during shutdown: {e}")

    try:
        await close_database()
    except Exception as e:
        logger.warning(f"Failed to close database during shutdown: {e}")

    logger.info("Shutdown complete")
