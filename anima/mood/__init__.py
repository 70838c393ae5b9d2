"""Mood state machine, trigger catalogue and change events."""

from anima.mood.classifier import KeywordMoodClassifier
from anima.mood.engine import MoodEngine
from anima.mood.events import MoodEventChannel
from anima.mood.models import (
    MoodChangeEvent,
    MoodInference,
    MoodSnapshot,
    MoodState,
    MoodTrigger,
    UnknownTriggerError,
)

__all__ = [
    "KeywordMoodClassifier",
    "MoodChangeEvent",
    "MoodEngine",
    "MoodEventChannel",
    "MoodInference",
    "MoodSnapshot",
    "MoodState",
    "MoodTrigger",
    "UnknownTriggerError",
]
