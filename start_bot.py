#!/usr/bin/env python3
"""
Startup script for the Discord Connect Receiver bot.

This script checks the local environment and starts the receiver bot.
"""

import asyncio
import os
import shutil
import sys
from pathlib import Path

from discord_connect_receiver.bots.core import main
from discord_connect_receiver.infrastructure import setup_logging

logger = setup_logging("bot_startup", log_file="logs/bot_startup.log")


async def startup():
    """Startup function with error handling."""
    try:
        logger.info("Starting Connect Receiver Bot...")

        if not Path(".env").exists():
            logger.warning("No .env file found!")
        if not os.getenv("LIBRESPOT_PATH") and not shutil.which("librespot"):
            logger.warning("librespot not found on PATH; device start will fail")

        await main()

    except KeyboardInterrupt:
        logger.info("Bot shutdown requested by user")
    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    os.makedirs("logs", exist_ok=True)

    try:
        asyncio.run(startup())
    except KeyboardInterrupt:
        print("\nBot shutdown requested")
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)
