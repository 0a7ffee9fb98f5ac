"""
Device and voice command handlers.

``device start|stop|status`` control the Spotify Connect device; ``join`` and
``leave`` manage the voice connection on their own.
"""

from discord.ext import commands

from discord_connect_receiver.bots.commands.base import BaseCommandHandler
from discord_connect_receiver.bots.utils.embed_builder import EmbedBuilder
from discord_connect_receiver.infrastructure import NotConnectedError


class DeviceCommands(BaseCommandHandler):
    """Handles the device and voice commands."""

    async def device_start_command(self, ctx: commands.Context) -> None:
        """Join the author's channel if needed and start the device."""
        try:
            channel = None
            if not self.orchestrator.session.is_connected:
                channel = self._author_voice_channel(ctx)
                if channel is None:
                    raise NotConnectedError(
                        "You must be in a voice channel to use this command."
                    )

            async with ctx.typing():
                await self.orchestrator.start_device(channel)

            device_name = self.orchestrator.supervisor.device_name
            await ctx.send(
                embed=EmbedBuilder.success(
                    "Device Started",
                    f'Device started as "{device_name}". Select it in Spotify and press play.',
                )
            )
        except Exception as e:
            await self._handle_command_error(ctx, e, "device start")

    async def device_stop_command(self, ctx: commands.Context) -> None:
        try:
            await self.orchestrator.stop_device()
            await ctx.send(embed=EmbedBuilder.info("Device Stopped", "Device stopped."))
        except Exception as e:
            await self._handle_command_error(ctx, e, "device stop")

    async def device_status_command(self, ctx: commands.Context) -> None:
        try:
            status = self.orchestrator.status()
            await ctx.send(embed=EmbedBuilder.device_status(status))
        except Exception as e:
            await self._handle_command_error(ctx, e, "device status")

    async def join_command(self, ctx: commands.Context) -> None:
        """Join the author's current voice channel."""
        try:
            channel = self._author_voice_channel(ctx)
            if channel is None:
                raise NotConnectedError("You must be in a voice channel to use this command.")
            await self.orchestrator.join(channel)
            await ctx.send(embed=EmbedBuilder.success("Joined", "Joined your voice channel."))
        except Exception as e:
            await self._handle_command_error(ctx, e, "join")

    async def leave_command(self, ctx: commands.Context) -> None:
        """Leave the voice channel and stop playback."""
        try:
            await self.orchestrator.leave()
            await ctx.send(embed=EmbedBuilder.info("Left", "Left the voice channel."))
        except Exception as e:
            await self._handle_command_error(ctx, e, "leave")

    async def help_command(self, ctx: commands.Context) -> None:
        """Show all available commands and their descriptions."""
        prefix = self.config.command_prefix if self.config else "!"
        await ctx.send(embed=EmbedBuilder.help_command(prefix))
