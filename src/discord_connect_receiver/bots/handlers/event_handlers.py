"""
Event handlers for the receiver bot.

This module contains the Discord event handlers separated from the bot class
for better organization.
"""

import logging
from typing import Any

import discord
from discord.ext import commands

from discord_connect_receiver.bots.utils.embed_builder import EmbedBuilder
from discord_connect_receiver.core.orchestrator import PlaybackOrchestrator


class EventHandlers:
    """Handles all Discord bot events."""

    def __init__(
        self,
        bot: Any,
        orchestrator: PlaybackOrchestrator,
        logger: logging.Logger,
    ):
        """Initialize event handlers."""
        self.bot_instance = bot  # This is the ConnectReceiverBot instance
        self.bot = bot.bot  # This is the actual Discord bot
        self.orchestrator = orchestrator
        self.logger = logger

    async def on_ready(self) -> None:
        """Bot ready event."""
        self.logger.info(f"Connect Receiver Bot online: {self.bot.user}")
        if not discord.opus.is_loaded():
            self.logger.warning("libopus is not loaded; voice playback will fail")

    async def on_message(self, message: discord.Message) -> None:
        """Message event handler."""
        if not message.author.bot:
            await self.bot.process_commands(message)

    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Forward the bot's own voice state changes to the transport."""
        if self.bot.user is None or member.id != self.bot.user.id:
            return
        self.orchestrator.session.handle_voice_state_update(before, after)

    async def on_command_error(self, ctx: commands.Context, error: Exception) -> None:
        """Command error handler."""
        if isinstance(error, commands.CommandNotFound):
            return
        try:
            embed = EmbedBuilder.command_error(str(error))
            await ctx.send(embed=embed)
            self.logger.error(f"Command error in {getattr(ctx, 'command', None)}: {error}")
        except discord.NotFound:
            self.logger.error(
                f"Command error in {getattr(ctx, 'command', None)}: {error} (channel was deleted)"
            )
        except discord.HTTPException as send_error:
            self.logger.error(f"Command error in {getattr(ctx, 'command', None)}: {error}")
            self.logger.error(f"Failed to send error message: {send_error}")
