#!/usr/bin/env python3
"""Create the execution and lead tables for the configured database."""

import sys

from nodeflow.config import load_config
from nodeflow.core.logging import setup_logging
from nodeflow.storage.database import configure_database, create_tables
from nodeflow.storage.models import WorkflowExecutionModel, LeadModel


def main():
    config = load_config()
    logger = setup_logging(level=config.log_level.value)

    try:
        logger.info(f"Initializing database at {config.database_url}")
        configure_database(config.database_url, echo=config.database_echo)
        create_tables()
        logger.info(
            f"Tables ready: {WorkflowExecutionModel.__tablename__}, {LeadModel.__tablename__}"
        )
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
