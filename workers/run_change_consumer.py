import asyncio
import sys

from app.core.logging import get_logger, setup_logger
from app.services.change_processor.worker import run_change_consumer


def main() -> None:
    """Main entry point for the database change consumer worker"""
    setup_logger()

    logger = get_logger("consumer")
    logger.info("Starting database change consumer...")

    exit_code = asyncio.run(run_change_consumer())
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
