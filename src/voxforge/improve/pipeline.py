"""Self-improvement pipeline.

One run turns an interaction outcome into applied profile changes and new
capabilities. Fetching the outcome, fetching the profile and the reasoning call
are fatal; every later step is best-effort and only recorded in the step log.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from voxforge.automation.deploy import (
    MISSING_CREDENTIALS_REQUEST,
    WorkflowDeployer,
    wiring_capability_spec,
)
from voxforge.automation.types import AutomationSpec
from voxforge.capabilities.factory import CapabilityFactory
from voxforge.capabilities.registry import CapabilityRegistry
from voxforge.capabilities.synthesis import smoke_test_arguments
from voxforge.capabilities.types import CapabilityDefinition, CapabilitySpec
from voxforge.channels.operator import OperatorNotifier
from voxforge.config import Settings
from voxforge.errors import OutcomeFetchError, ProviderError, VoxforgeError
from voxforge.ids import new_id
from voxforge.improve.history import ImprovementHistory
from voxforge.improve.types import ImprovementRecord, InteractionOutcome, StepLog
from voxforge.logging import run_context
from voxforge.profile.tuning import TuningAdapter
from voxforge.profile.types import AgentProfile
from voxforge.reasoning.gateway import Analysis, ReasoningGateway
from voxforge.voice.client import VoiceClient

logger = logging.getLogger(__name__)

MANUAL_OUTCOME_ID = "manual"

Sleep = Callable[[float], Awaitable[None]]
OutcomeLoader = Callable[[StepLog], Awaitable[InteractionOutcome]]


def _item_label(raw: Any) -> str:
    name = raw.get("name") if isinstance(raw, dict) else None
    return str(name) if name else "unnamed"


def _validation_detail(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'item'}: {error['msg']}"
        for error in exc.errors()[:3]
    )


@dataclass(slots=True)
class _RunState:
    created: list[str] = field(default_factory=list)
    deployed: list[str] = field(default_factory=list)
    resource_requests: list[str] = field(default_factory=list)


class SelfImprovementPipeline:
    def __init__(
        self,
        settings: Settings,
        *,
        voice: VoiceClient,
        tuning: TuningAdapter,
        registry: CapabilityRegistry,
        factory: CapabilityFactory,
        deployer: WorkflowDeployer,
        gateway: ReasoningGateway,
        notifier: OperatorNotifier,
        history: ImprovementHistory,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self.voice = voice
        self.tuning = tuning
        self.registry = registry
        self.factory = factory
        self.deployer = deployer
        self.gateway = gateway
        self.notifier = notifier
        self.history = history
        self._sleep = sleep

    async def run_for_outcome(
        self,
        outcome_id: str,
        profile_id: str,
        contact: str | None = None,
    ) -> ImprovementRecord:
        async def load(log: StepLog) -> InteractionOutcome:
            try:
                call = await self.voice.get_call(outcome_id)
            except VoxforgeError as exc:
                log.error("fetch_outcome", f"Failed to fetch outcome {outcome_id}: {exc}")
                raise OutcomeFetchError(f"could not fetch outcome {outcome_id}: {exc}") from exc
            outcome = InteractionOutcome.from_call(call)
            if not outcome.outcome_id:
                outcome.outcome_id = outcome_id
            log.ok(
                "fetch_outcome",
                f"Got transcript ({len(outcome.transcript)} chars), status={outcome.status}, "
                f"ended={outcome.end_reason or 'unknown'}",
            )
            return outcome

        return await self._run(load, outcome_id, profile_id, contact)

    async def run_for_transcript(
        self,
        transcript: str,
        profile_id: str,
        contact: str | None = None,
    ) -> ImprovementRecord:
        async def load(log: StepLog) -> InteractionOutcome:
            log.ok("fetch_outcome", f"Manual transcript supplied ({len(transcript)} chars)")
            return InteractionOutcome(
                outcome_id=MANUAL_OUTCOME_ID,
                status=MANUAL_OUTCOME_ID,
                transcript=transcript,
                contact=contact,
            )

        return await self._run(load, MANUAL_OUTCOME_ID, profile_id, contact)

    async def _run(
        self,
        load_outcome: OutcomeLoader,
        outcome_id: str,
        profile_id: str,
        contact: str | None,
    ) -> ImprovementRecord:
        run_id = new_id("run")
        with run_context(run_id, outcome_id, profile_id):
            logger.info("Self-improvement run started")
            return await self._execute(run_id, load_outcome, profile_id, contact)

    async def _execute(
        self,
        run_id: str,
        load_outcome: OutcomeLoader,
        profile_id: str,
        contact: str | None,
    ) -> ImprovementRecord:
        log = StepLog()
        state = _RunState()

        outcome = await load_outcome(log)
        contact = contact or outcome.contact

        try:
            profile = await self.tuning.fetch(profile_id)
        except VoxforgeError as exc:
            log.error("fetch_profile", str(exc))
            raise
        log.ok(
            "fetch_profile",
            f"Current instructions ({profile.schema_name}): {profile.instructions[:80]}",
        )

        capabilities = [item.summary() for item in self.registry.list_all()]
        automations = await self.deployer.existing_context()
        log.ok(
            "enumerate_capabilities",
            f"{len(capabilities)} existing capabilities: "
            f"{', '.join(item['name'] for item in capabilities) or 'none'}",
        )

        analysis = await self._reason(log, outcome, profile, capabilities, automations)
        change_set = analysis.change_set
        state.resource_requests.extend(change_set.resource_requests)

        profile_before = profile.snapshot()
        profile_after = await self._apply_configuration(log, profile, analysis)

        await self._synthesize_capabilities(log, state, change_set.new_capabilities)
        await self._deploy_automations(log, state, analysis)
        await self._request_resources(log, state.resource_requests)

        record = ImprovementRecord(
            run_id=run_id,
            outcome_id=outcome.outcome_id,
            contact=contact,
            failures=list(change_set.failures),
            changes=list(change_set.changes),
            capabilities_created=list(state.created),
            automations_deployed=list(state.deployed),
            profile_before=profile_before,
            profile_after=profile_after,
            raw_reasoning=analysis.raw,
            step_log=log,
        )
        self.history.append(record)
        log.ok("persist_record", f"Improvement record stored ({len(self.history)} total)")

        await self._notify_summary(log, record)
        await self._trigger_callback(log, record, profile_id)

        logger.info("Self-improvement run complete (%d steps)", len(log))
        return record

    async def _reason(
        self,
        log: StepLog,
        outcome: InteractionOutcome,
        profile: AgentProfile,
        capabilities: list[dict[str, Any]],
        automations: str,
    ) -> Analysis:
        try:
            analysis = await self.gateway.analyze(
                outcome.transcript, profile, capabilities, automations
            )
        except ProviderError as exc:
            log.error("invoke_reasoning", f"Reasoning call failed: {exc}")
            raise
        change_set = analysis.change_set
        summary = (
            f"{len(change_set.failures)} failures, {len(change_set.changes)} changes, "
            f"{len(change_set.new_capabilities)} new capabilities, "
            f"{len(change_set.new_automations)} new automations"
        )
        if analysis.parsed:
            log.ok("invoke_reasoning", summary)
        else:
            log.error("invoke_reasoning", "Output could not be parsed; using no-op change set")
        return analysis

    async def _apply_configuration(
        self,
        log: StepLog,
        profile: AgentProfile,
        analysis: Analysis,
    ) -> dict[str, Any]:
        changes = analysis.change_set.config_changes
        if changes.is_empty():
            log.skipped("apply_configuration", "No configuration changes requested")
            return profile.snapshot()
        try:
            await self.tuning.apply(profile.profile_id, changes)
        except VoxforgeError as exc:
            log.error("apply_configuration", f"Failed to update profile: {exc}")
            return profile.snapshot()
        log.ok("apply_configuration", f"Updated: {', '.join(changes.field_names())}")
        return profile.with_changes(changes)

    async def _smoke_test(self, log: StepLog, definition: CapabilityDefinition) -> None:
        args = smoke_test_arguments(definition.parameters)
        try:
            output = await definition.handler(args)
        except Exception as exc:
            log.error(
                "smoke_test_capability", f'"{definition.name}" smoke test failed: {exc}'
            )
            return
        log.ok(
            "smoke_test_capability",
            f'"{definition.name}" smoke test passed: {str(output)[:100]}',
        )

    async def _create_capability(
        self,
        log: StepLog,
        state: _RunState,
        spec: CapabilitySpec,
        step: str,
    ) -> bool:
        try:
            definition = await self.factory.create(spec)
        except VoxforgeError as exc:
            log.error(step, f'Failed to create "{spec.name}": {exc}')
            return False
        state.created.append(definition.name)
        log.ok(step, f'Created "{definition.name}": {definition.description}')
        await self._smoke_test(log, definition)
        return True

    async def _synthesize_capabilities(
        self,
        log: StepLog,
        state: _RunState,
        requested: list[Any],
    ) -> None:
        if not requested:
            log.skipped("synthesize_capability", "No new capabilities requested")
            return
        for raw in requested:
            try:
                spec = CapabilitySpec.model_validate(raw)
            except ValidationError as exc:
                log.error(
                    "synthesize_capability",
                    f'Invalid capability request "{_item_label(raw)}": '
                    f"{_validation_detail(exc)}",
                )
                continue
            await self._create_capability(log, state, spec, "synthesize_capability")

    async def _deploy_automations(
        self,
        log: StepLog,
        state: _RunState,
        analysis: Analysis,
    ) -> None:
        requested = analysis.change_set.new_automations
        if not requested:
            log.skipped("deploy_automation", "No new automations requested")
            return
        if not self.deployer.configured:
            log.skipped(
                "deploy_automation",
                "Automation platform not configured; requesting credentials instead",
            )
            state.resource_requests.append(MISSING_CREDENTIALS_REQUEST)
            return
        for raw in requested:
            try:
                spec = AutomationSpec.model_validate(raw)
            except ValidationError as exc:
                log.error(
                    "deploy_automation",
                    f'Invalid automation request "{_item_label(raw)}": '
                    f"{_validation_detail(exc)}",
                )
                continue
            if not spec.steps:
                log.skipped("deploy_automation", f'Automation "{spec.name}" has no steps')
                continue
            try:
                deployed = await self.deployer.deploy(spec)
            except VoxforgeError as exc:
                log.error("deploy_automation", f'Failed to deploy "{spec.name}": {exc}')
                continue
            state.deployed.append(f"{deployed.name} -> {deployed.endpoint_url}")
            log.ok(
                "deploy_automation",
                f'"{deployed.name}" deployed as {deployed.deployed_id}: {deployed.endpoint_url}',
            )
            await self._create_capability(
                log, state, wiring_capability_spec(deployed), "wire_automation"
            )

    async def _request_resources(self, log: StepLog, requests: list[str]) -> None:
        if not requests:
            log.skipped("request_resources", "No missing resources")
            return
        for request in requests:
            try:
                await self.notifier.notify(f"RESOURCE REQUEST: {request}")
            except VoxforgeError as exc:
                log.error("request_resources", f"{request} (notification failed: {exc})")
                continue
            log.ok("request_resources", request)

    async def _notify_summary(self, log: StepLog, record: ImprovementRecord) -> None:
        lines = [f"Self-improvement complete (outcome {record.outcome_id})", ""]
        lines.append("Failures:")
        lines.extend(f"  - {item}" for item in record.failures)
        lines.append("Changes:")
        lines.extend(f"  + {item}" for item in record.changes)
        if record.capabilities_created:
            lines.append(f"Capabilities: {', '.join(record.capabilities_created)}")
        if record.automations_deployed:
            lines.append(f"Automations: {', '.join(record.automations_deployed)}")
        lines.append(
            f"Callback to {record.contact} scheduled."
            if record.contact
            else "No contact address; skipping callback."
        )
        try:
            delivered = await self.notifier.notify("\n".join(lines))
        except VoxforgeError as exc:
            log.error("notify_operator", f"Summary notification failed: {exc}")
            return
        if delivered:
            log.ok("notify_operator", "Summary sent to operator")
        else:
            log.skipped("notify_operator", "Summary not delivered (operator channel unavailable)")

    async def _trigger_callback(
        self,
        log: StepLog,
        record: ImprovementRecord,
        profile_id: str,
    ) -> None:
        if not record.contact:
            log.skipped("trigger_callback", "No contact address available")
            return
        settle = max(0.0, float(self._settings.callback_settle_seconds))
        await self._sleep(settle)
        try:
            call_id = await self.voice.create_outbound_call(
                profile_id, record.contact, self._settings.voice_phone_number_id
            )
        except VoxforgeError as exc:
            log.error("trigger_callback", f"Callback to {record.contact} failed: {exc}")
            try:
                await self.notifier.notify(
                    f"Failed to call customer back at {record.contact}: {exc}"
                )
            except VoxforgeError as notify_exc:
                logger.warning("Callback failure notification failed: %s", notify_exc)
            return
        record.callback_triggered = True
        log.ok("trigger_callback", f"Callback initiated: {call_id}")
