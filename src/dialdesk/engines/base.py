"""AI engine abstraction shared by every engine adapter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from ..models import ProviderConfig


class EngineError(RuntimeError):
    """Raised on engine-specific failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EngineNotConfiguredError(EngineError):
    """Raised when an engine lacks the endpoint or credentials to execute a task."""


class UnsupportedTaskError(EngineError):
    """Raised for unknown tasks, or tasks an engine does not implement."""


class AITask(str, Enum):
    """Tasks the calling workflow can ask an AI engine to perform."""

    CALL_SCRIPT = "CALL_SCRIPT"
    CALL_SUMMARY = "CALL_SUMMARY"
    CALL_TURN = "CALL_TURN"


def coerce_task(value: AITask | str) -> AITask:
    try:
        return AITask(value)
    except ValueError:
        raise UnsupportedTaskError(f"Unsupported AI task: {value}") from None


class EngineInput(BaseModel):
    """Normalized input handed to an engine regardless of vendor."""

    task: AITask
    customer: dict[str, Any] | None = None
    transcript: str = ""
    turn: int = 0
    context: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    raw_payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(
        cls, task: AITask | str, payload: dict[str, Any] | None = None
    ) -> EngineInput:
        payload = payload or {}
        return cls(
            task=coerce_task(task),
            customer=payload.get("customer") or None,
            transcript=str(payload.get("transcript") or ""),
            turn=int(payload.get("turn") or 0),
            context=payload.get("context") or {},
            metadata=payload.get("metadata") or {},
            raw_payload=payload,
        )


class EngineOutput(BaseModel):
    """Vendor-neutral engine output."""

    intent: str
    response_text: str
    context: dict[str, Any]
    result: dict[str, Any]
    raw: dict[str, Any] = Field(default_factory=dict)


def normalize_task_result(task: AITask, raw: dict[str, Any]) -> dict[str, Any]:
    if task is AITask.CALL_SCRIPT:
        return {"script": str(raw.get("script") or "").strip()}

    if task is AITask.CALL_SUMMARY:
        return {
            "summary": str(raw.get("summary") or "Transcript processed.").strip(),
            "intent": str(raw.get("intent") or "UNKNOWN").strip(),
            "next_action": str(raw.get("next_action") or "Review manually.").strip(),
        }

    return {
        "reply": str(raw.get("reply") or "Please continue.").strip(),
        "should_end": bool(raw.get("should_end")),
    }


def normalize_engine_output(
    task: AITask, engine_input: EngineInput, raw_result: dict[str, Any] | None
) -> EngineOutput:
    raw = raw_result or {}
    result = normalize_task_result(task, raw)

    response_text = result.get("reply") or result.get("script") or result.get("summary") or ""
    intent = result.get("intent") or engine_input.context.get("intent") or "UNKNOWN"

    return EngineOutput(
        intent=intent,
        response_text=response_text,
        context={
            **engine_input.context,
            "task": task.value,
            "turn": engine_input.turn,
            "should_end": result.get("should_end"),
        },
        result=result,
        raw=raw,
    )


class Engine(Protocol):
    """Interface for AI engine adapters."""

    name: str

    def supports(self, task: AITask | str) -> bool:
        """Whether this engine implements ``task``."""

    async def run(
        self, task: AITask | str, engine_input: EngineInput, config: ProviderConfig
    ) -> EngineOutput:
        """Execute the task and return a normalized output."""


class BaseEngine(ABC):
    """Helper base class that enforces the task contract around ``invoke``."""

    name: str
    supported_tasks: frozenset[AITask] = frozenset(AITask)

    def __init__(self, supported_tasks: Iterable[AITask] | None = None) -> None:
        if supported_tasks is not None:
            self.supported_tasks = frozenset(supported_tasks)

    def supports(self, task: AITask | str) -> bool:
        try:
            return coerce_task(task) in self.supported_tasks
        except UnsupportedTaskError:
            return False

    async def run(
        self, task: AITask | str, engine_input: EngineInput, config: ProviderConfig
    ) -> EngineOutput:
        task = coerce_task(task)
        if task not in self.supported_tasks:
            raise UnsupportedTaskError(f"{self.name} does not support task: {task.value}")

        raw_result = await self.invoke(task, engine_input, config)
        return normalize_engine_output(task, engine_input, raw_result)

    @abstractmethod
    async def invoke(
        self, task: AITask, engine_input: EngineInput, config: ProviderConfig
    ) -> dict[str, Any]:
        """Call the vendor and return a task-shaped raw result."""


def truncate(text: str, limit: int = 2000) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...[truncated {len(text) - limit} chars]"
