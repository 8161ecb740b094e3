#!/usr/bin/env python
"""Script to run the task tracker server."""
import uvicorn

from tasktrack import config
from tasktrack.logging_setup import setup_logging

if __name__ == "__main__":
    setup_logging(config.LOG_LEVEL, config.LOG_DIR or None)
    uvicorn.run(
        "tasktrack.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.RELOAD,
        log_config=None,
    )
