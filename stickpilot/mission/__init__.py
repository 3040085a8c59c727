"""
Mission Module.

This module provides the mission lifecycle state machine.
"""

from stickpilot.mission.lifecycle import MissionLifecycleController

__all__ = ["MissionLifecycleController"]
