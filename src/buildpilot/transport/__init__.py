"""
Transport sessions: where a build command runs.

- LocalProcessSession: a subprocess behind a shell wrapper (two streams)
- RemoteSession: an authenticated SSH session (one merged stream)
"""

from .base import EXIT_STATUS_UNKNOWN, ChunkReader, CommandChannel, TransportSession
from .local import LocalProcessChannel, LocalProcessSession
from .remote import RemoteChannel, RemoteSession, load_private_key

__all__ = [
    "EXIT_STATUS_UNKNOWN",
    "ChunkReader",
    "CommandChannel",
    "TransportSession",
    "LocalProcessChannel",
    "LocalProcessSession",
    "RemoteChannel",
    "RemoteSession",
    "load_private_key",
]
