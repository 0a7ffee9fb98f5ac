"""
Base command handler class for Discord bot commands.

This module provides a base class that all command handlers can inherit from,
providing common functionality and utilities.
"""

import logging
from typing import Optional

import discord
from discord.ext import commands

from discord_connect_receiver.bots.utils.embed_builder import EmbedBuilder
from discord_connect_receiver.config.settings import ReceiverConfig
from discord_connect_receiver.core.orchestrator import PlaybackOrchestrator
from discord_connect_receiver.infrastructure import ReceiverError


class BaseCommandHandler:
    """Base class for command handlers with common functionality."""

    def __init__(
        self,
        orchestrator: PlaybackOrchestrator,
        logger: Optional[logging.Logger] = None,
        config: Optional[ReceiverConfig] = None,
    ):
        """Initialize the base command handler."""
        self.orchestrator = orchestrator
        self.logger = logger or logging.getLogger(__name__)
        self.config = config

    @staticmethod
    def _author_voice_channel(ctx: commands.Context) -> Optional[discord.VoiceChannel]:
        voice = getattr(ctx.author, "voice", None)
        return voice.channel if voice is not None else None

    async def _handle_command_error(
        self, ctx: commands.Context, error: Exception, command_name: str
    ) -> None:
        """Reply with the error; receiver errors carry a readable message."""
        if isinstance(error, ReceiverError):
            self.logger.warning(f"{command_name} failed: {error}")
            embed = EmbedBuilder.command_error(str(error))
        else:
            self.logger.error(f"Error in {command_name} command: {error}", exc_info=True)
            embed = EmbedBuilder.error(
                "Something Went Wrong",
                f"An unexpected error occurred. Please try again.\n\n**Error:** {str(error)}",
            )
        try:
            await ctx.send(embed=embed)
        except discord.NotFound:
            self.logger.warning(
                f"Could not send error message for {command_name} - channel may have been deleted"
            )
        except discord.HTTPException as send_error:
            self.logger.warning(
                f"Could not send error message for {command_name}: {send_error}"
            )
