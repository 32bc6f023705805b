#!/usr/bin/env python3
"""
Simple launcher for the pH Titration Monitor.
This script ensures all dependencies are available and starts the application.
"""
import logging
import sys

from config import LOG_FORMAT, LOG_LEVEL

logger = logging.getLogger(__name__)


def check_requirements():
    """Check if required packages are installed."""
    required = ['pandas', 'serial', 'matplotlib', 'openpyxl']
    missing = []

    for package in required:
        try:
            __import__(package)
        except ImportError:
            missing.append(package)

    if missing:
        logger.error("Missing required packages: %s", ", ".join(missing))
        logger.error("Please install with: pip install -r requirements.txt")
        return False
    return True


def main():
    """Main launcher function."""
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    logger.info("pH Titration Monitor Launcher")

    if not check_requirements():
        sys.exit(1)

    logger.info("Starting GUI application...")
    try:
        from titration_gui import TitrationGUI
        app = TitrationGUI()
        app.run()
    except Exception:
        logger.exception("Error starting application")
        sys.exit(1)


if __name__ == "__main__":
    main()
