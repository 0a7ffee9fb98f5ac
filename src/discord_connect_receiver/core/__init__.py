"""
Core components for the Discord Connect Receiver.

This package contains the process supervision and streaming pipeline that
form the backbone of the receiver: the named pipe, the librespot supervisor,
the audio pipelines, the voice transport and the orchestrator tying them
together.
"""

from .named_pipe import NamedPipe
from .respawn import RespawnPolicy
from .source_supervisor import SourceProcessSupervisor, SourceState
from .pipeline import (
    AudioPipeline,
    ExternalChain,
    NativeChain,
    PipeReaderProtocol,
    create_pipeline,
)
from .transport import ConnectionState, TransportSession
from .orchestrator import DeviceStatus, PlaybackOrchestrator

__all__ = [
    "NamedPipe",
    "RespawnPolicy",
    "SourceProcessSupervisor",
    "SourceState",
    "AudioPipeline",
    "ExternalChain",
    "NativeChain",
    "PipeReaderProtocol",
    "create_pipeline",
    "ConnectionState",
    "TransportSession",
    "DeviceStatus",
    "PlaybackOrchestrator",
]
