"""
Core bot class for the Discord Connect Receiver.

This module wires the Discord bot, its command and event handlers and the
playback orchestrator together.
"""

import asyncio
import sys
from typing import Optional

import discord
from discord.ext import commands

from discord_connect_receiver.bots.commands import DeviceCommands
from discord_connect_receiver.bots.handlers import EventHandlers
from discord_connect_receiver.config.settings import config_manager
from discord_connect_receiver.core.orchestrator import PlaybackOrchestrator
from discord_connect_receiver.infrastructure import ConfigError, setup_logging


class ConnectReceiverBot:
    """Main bot class that manages the Discord bot and all its components."""

    def __init__(self):
        """Initialize the bot with all necessary components."""
        self.logger = setup_logging(
            component_name="receiver_bot",
            log_file="logs/receiver_bot.log",
        )

        try:
            self.config = config_manager.get_config(require_token=True)
        except ConfigError as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

        intents = discord.Intents.default()
        intents.voice_states = True
        intents.guilds = True
        intents.message_content = True

        self.bot = commands.Bot(
            command_prefix=self.config.command_prefix,
            intents=intents,
            help_command=None,
        )

        self.orchestrator = PlaybackOrchestrator(self.config)
        self.event_handlers = EventHandlers(
            bot=self, orchestrator=self.orchestrator, logger=self.logger
        )
        self.device_commands = DeviceCommands(
            orchestrator=self.orchestrator, logger=self.logger, config=self.config
        )

        self._setup_event_handlers()
        self._register_commands()

    def _setup_event_handlers(self) -> None:
        """Setup event handlers for the bot."""
        self.bot.event(self.event_handlers.on_ready)
        self.bot.event(self.event_handlers.on_message)
        self.bot.event(self.event_handlers.on_voice_state_update)
        self.bot.event(self.event_handlers.on_command_error)

    def _register_commands(self) -> None:
        """Register all bot commands."""
        handler = self.device_commands

        @self.bot.group(name="device", invoke_without_command=True)
        async def device_wrapper(ctx):
            await handler.device_status_command(ctx)

        @device_wrapper.command(name="start")
        async def device_start_wrapper(ctx):
            await handler.device_start_command(ctx)

        @device_wrapper.command(name="stop")
        async def device_stop_wrapper(ctx):
            await handler.device_stop_command(ctx)

        @device_wrapper.command(name="status")
        async def device_status_wrapper(ctx):
            await handler.device_status_command(ctx)

        @self.bot.command(name="join")
        async def join_wrapper(ctx):
            await handler.join_command(ctx)

        @self.bot.command(name="leave")
        async def leave_wrapper(ctx):
            await handler.leave_command(ctx)

        @self.bot.command(name="help")
        async def help_wrapper(ctx):
            await handler.help_command(ctx)

    async def start(self) -> None:
        """Start the bot."""
        try:
            self.logger.info("Starting Connect Receiver Bot...")
            await self.bot.start(self.config.discord_token)
        except Exception as e:
            self.logger.critical(f"Failed to start Connect Receiver Bot: {e}")
            raise

    async def close(self) -> None:
        """Stop the device, leave voice and close the bot."""
        try:
            await self.orchestrator.shutdown()
        except Exception as e:
            self.logger.error(f"Error during shutdown: {e}", exc_info=True)
        if not self.bot.is_closed():
            await self.bot.close()


# Global bot instance
_bot_instance: Optional[ConnectReceiverBot] = None


def get_bot_instance() -> ConnectReceiverBot:
    """Get the global bot instance."""
    global _bot_instance
    if _bot_instance is None:
        _bot_instance = ConnectReceiverBot()
    return _bot_instance


async def main():
    """Main function to initialize and run the bot."""
    bot = get_bot_instance()

    try:
        await bot.start()
    except KeyboardInterrupt:
        bot.logger.info("Bot shutdown requested")
    except Exception as e:
        bot.logger.critical(f"Fatal error: {e}")
        raise
    finally:
        await bot.close()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
