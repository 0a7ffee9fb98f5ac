"""
Audio components for the Discord Connect Receiver.

This package contains the pieces the playback pipeline is assembled from:
- Opus frame/bitrate helpers, resampling and encoding
- Packet buffering between the pipeline and discord.py's player
- The discord.py audio source the player consumes
"""

from .buffers import PacketBuffer
from .codec import (
    OpusFrameEncoder,
    PcmResampler,
    frame_duration,
    frame_size,
    iter_ogg_packets,
    parse_bitrate,
)
from .sources import PipelineAudioSource, PlayerState

__all__ = [
    "PacketBuffer",
    "OpusFrameEncoder",
    "PcmResampler",
    "frame_duration",
    "frame_size",
    "iter_ogg_packets",
    "parse_bitrate",
    "PipelineAudioSource",
    "PlayerState",
]
