"""AI engine exports."""

from .base import (
    AITask,
    BaseEngine,
    Engine,
    EngineError,
    EngineInput,
    EngineNotConfiguredError,
    EngineOutput,
    UnsupportedTaskError,
    coerce_task,
    normalize_engine_output,
)
from .dialogflow import DialogflowEngine
from .http import HttpEngine
from .openai import OpenAIEngine

__all__ = [
    "AITask",
    "BaseEngine",
    "Engine",
    "EngineError",
    "EngineInput",
    "EngineNotConfiguredError",
    "EngineOutput",
    "UnsupportedTaskError",
    "coerce_task",
    "normalize_engine_output",
    "DialogflowEngine",
    "HttpEngine",
    "OpenAIEngine",
]
