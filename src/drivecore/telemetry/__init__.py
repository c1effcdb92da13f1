"""
Telemetry module - Car data recording.

This module contains:
- TelemetryRecorder: Samples car snapshots into channels
- TelemetryChannel: Individual data channel
"""

from drivecore.telemetry.recorder import TelemetryRecorder, RecorderConfig
from drivecore.telemetry.channel import TelemetryChannel, ChannelConfig

__all__ = [
    "TelemetryRecorder",
    "RecorderConfig",
    "TelemetryChannel",
    "ChannelConfig",
]
