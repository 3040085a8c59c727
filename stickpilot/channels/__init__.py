"""
Channels Module.

This module provides gesture encoding, command dispatch and RC channel
override output.
"""

from stickpilot.channels.encoder import CommandEncoder, JoystickGeometry, encode_gesture
from stickpilot.channels.dispatch import DispatchLimiter
from stickpilot.channels.override import StickOverride

__all__ = [
    "CommandEncoder",
    "DispatchLimiter",
    "JoystickGeometry",
    "StickOverride",
    "encode_gesture",
]
