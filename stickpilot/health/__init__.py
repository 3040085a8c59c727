"""
Health Module.

This module provides takeoff readiness and altitude polling.
"""

from stickpilot.health.poller import PollMode, TelemetryPoller

__all__ = ["PollMode", "TelemetryPoller"]
