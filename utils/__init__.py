"""
Utilities module for the Opportunity Scoring Service.
"""
from .logger import logger, init_logging, setup_logging
from .events import EventEmitter, LoguruEventEmitter, RecordingEventEmitter, default_emitter

__all__ = [
    "logger",
    "init_logging",
    "setup_logging",
    "EventEmitter",
    "LoguruEventEmitter",
    "RecordingEventEmitter",
    "default_emitter",
]
