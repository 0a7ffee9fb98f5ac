"""Bot utilities."""

from .embed_builder import EmbedBuilder

__all__ = ["EmbedBuilder"]
