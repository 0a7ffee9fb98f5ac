"""
Utility class for building Discord embeds consistently.

This module provides a centralized way to create Discord embeds with
consistent styling and formatting across the bot.
"""

import discord

from discord_connect_receiver.core.orchestrator import DeviceStatus


class EmbedBuilder:
    """Utility class for building Discord embeds with consistent styling."""

    @staticmethod
    def success(title: str, description: str, **kwargs) -> discord.Embed:
        """Create a success embed (green)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.green(), **kwargs
        )

    @staticmethod
    def error(title: str, description: str, **kwargs) -> discord.Embed:
        """Create an error embed (red)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.red(), **kwargs
        )

    @staticmethod
    def warning(title: str, description: str, **kwargs) -> discord.Embed:
        """Create a warning embed (orange)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.orange(), **kwargs
        )

    @staticmethod
    def info(title: str, description: str, **kwargs) -> discord.Embed:
        """Create an info embed (blue)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.blue(), **kwargs
        )

    @staticmethod
    def command_error(error_message: str) -> discord.Embed:
        """Create a command error embed."""
        return discord.Embed(
            description=f"❌ Error: {error_message}",
            color=discord.Color.red(),
        )

    @staticmethod
    def device_status(status: DeviceStatus) -> discord.Embed:
        """Create the ``device status`` embed."""
        running = "running" if status.running else "stopped"
        voice = "connected" if status.connected else "disconnected"
        embed = discord.Embed(
            title="🔊 Spotify Connect Device",
            description=f"Device is {running}. Voice is {voice}. FIFO: {status.pipe_path}",
            color=discord.Color.green() if status.running else discord.Color.light_grey(),
        )
        embed.add_field(name="Device Name", value=status.device_name, inline=True)
        embed.add_field(name="Pipeline", value=status.pipeline_mode, inline=True)
        embed.add_field(name="Player", value=status.player_state, inline=True)
        return embed

    @staticmethod
    def help_command(prefix: str = "!") -> discord.Embed:
        """Create the help command embed."""
        embed = discord.Embed(
            title="📖 Connect Receiver - Commands",
            description="Play a Spotify Connect device into your voice channel.",
            color=discord.Color.blue(),
        )

        embed.add_field(
            name="🎵 Device",
            value=f"• `{prefix}device start` - Join your channel and start the device\n"
            f"• `{prefix}device stop` - Stop playback and the device\n"
            f"• `{prefix}device status` - Show device and voice status",
            inline=False,
        )

        embed.add_field(
            name="🔈 Voice",
            value=f"• `{prefix}join` - Join your current voice channel\n"
            f"• `{prefix}leave` - Leave the voice channel and stop playback",
            inline=False,
        )

        embed.set_footer(text="After starting the device, select it in Spotify and press play")
        return embed
