"""Minimal WebSocket engine for live reload: frame codec, handshake, registry, listener."""

from .frames import Frame, Opcode, decode_frame, encode_frame
from .handshake import compute_accept_key
from .registry import BroadcastResult, Connection, ConnectionRegistry, ConnectionState
from .server import WebSocketServer, WebSocketStats

__all__ = [
    "Frame",
    "Opcode",
    "decode_frame",
    "encode_frame",
    "compute_accept_key",
    "BroadcastResult",
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "WebSocketServer",
    "WebSocketStats",
]
