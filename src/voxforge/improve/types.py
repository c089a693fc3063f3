"""Self-improvement records and step logs."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from voxforge.ids import now_iso

logger = logging.getLogger(__name__)


class StepStatus(StrEnum):
    OK = "ok"
    ERROR = "error"
    SKIPPED = "skipped"


class RunState(StrEnum):
    COMPLETE = "complete"
    ABORTED = "aborted"


@dataclass(slots=True)
class InteractionOutcome:
    outcome_id: str
    status: str
    end_reason: str = ""
    transcript: str = ""
    analysis: dict[str, Any] | None = None
    contact: str | None = None

    @classmethod
    def from_call(cls, call: dict[str, Any]) -> InteractionOutcome:
        customer = call.get("customer")
        contact = customer.get("number") if isinstance(customer, dict) else None
        analysis = call.get("analysis")
        return cls(
            outcome_id=str(call.get("id", "")),
            status=str(call.get("status", "")),
            end_reason=str(call.get("endedReason") or ""),
            transcript=str(call.get("transcript") or ""),
            analysis=analysis if isinstance(analysis, dict) else None,
            contact=str(contact) if contact else None,
        )


@dataclass(slots=True, frozen=True)
class PipelineStep:
    step: str
    status: StepStatus
    detail: str
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, str]:
        return {
            "step": self.step,
            "status": self.status.value,
            "detail": self.detail,
            "timestamp": self.timestamp,
        }


class StepLog:
    """Append-only log of pipeline steps, mirrored to the application log."""

    def __init__(self) -> None:
        self._entries: list[PipelineStep] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PipelineStep]:
        return iter(tuple(self._entries))

    def append(self, step: str, status: StepStatus, detail: str) -> PipelineStep:
        entry = PipelineStep(step=step, status=status, detail=detail)
        self._entries.append(entry)
        level = logging.WARNING if status is StepStatus.ERROR else logging.INFO
        logger.log(level, "%s [%s]: %s", step, status.value, detail)
        return entry

    def ok(self, step: str, detail: str) -> PipelineStep:
        return self.append(step, StepStatus.OK, detail)

    def error(self, step: str, detail: str) -> PipelineStep:
        return self.append(step, StepStatus.ERROR, detail)

    def skipped(self, step: str, detail: str) -> PipelineStep:
        return self.append(step, StepStatus.SKIPPED, detail)

    def entries(self) -> tuple[PipelineStep, ...]:
        return tuple(self._entries)

    def to_list(self) -> list[dict[str, str]]:
        return [entry.to_dict() for entry in self._entries]


@dataclass(slots=True)
class ImprovementRecord:
    outcome_id: str
    contact: str | None
    failures: list[str]
    changes: list[str]
    capabilities_created: list[str]
    automations_deployed: list[str]
    profile_before: dict[str, Any]
    profile_after: dict[str, Any]
    raw_reasoning: str
    step_log: StepLog
    run_id: str = ""
    callback_triggered: bool = False
    state: RunState = RunState.COMPLETE
    timestamp: str = field(default_factory=now_iso)

    def summary(self) -> dict[str, Any]:
        return {
            "outcomeId": self.outcome_id,
            "contact": self.contact,
            "timestamp": self.timestamp,
            "failures": list(self.failures),
            "changes": list(self.changes),
            "capabilitiesCreated": list(self.capabilities_created),
            "callbackTriggered": self.callback_triggered,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.summary(),
            "runId": self.run_id,
            "state": self.state.value,
            "automationsDeployed": list(self.automations_deployed),
            "profileBefore": self.profile_before,
            "profileAfter": self.profile_after,
            "rawReasoning": self.raw_reasoning,
            "stepLog": self.step_log.to_list(),
        }
