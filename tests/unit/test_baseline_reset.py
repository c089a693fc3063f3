import pytest

from voxforge.capabilities.types import CapabilitySpec
from voxforge.improve.types import ImprovementRecord, StepLog
from voxforge.profile.baseline import BASELINE, reset_to_baseline


def _record(outcome_id: str) -> ImprovementRecord:
    return ImprovementRecord(
        outcome_id=outcome_id,
        contact=None,
        failures=[],
        changes=[],
        capabilities_created=[],
        automations_deployed=[],
        profile_before={},
        profile_after={},
        raw_reasoning="",
        step_log=StepLog(),
    )


@pytest.mark.asyncio
async def test_reset_is_idempotent(services, backend) -> None:
    await services.factory.create(
        CapabilitySpec(name="temp_lookup", handlerSource=[{"op": "return", "template": "x"}])
    )
    services.history.append(_record("call-1"))

    first = await reset_to_baseline("asst-1", services.tuning, services.registry, services.history)
    state_after_first = dict(backend.assistant)
    second = await reset_to_baseline("asst-1", services.tuning, services.registry, services.history)

    assert first == {"removedCapabilities": ["temp_lookup"], "clearedRecords": 1}
    assert second == {"removedCapabilities": [], "clearedRecords": 0}
    assert backend.assistant == state_after_first
    assert backend.patches[0] == backend.patches[1]
    assert len(services.registry) == 4
    assert len(services.history) == 0

    profile = await services.tuning.fetch("asst-1")
    assert profile.instructions == BASELINE.instructions
    assert profile.generation_limit == 250
    assert profile.bound_capability_ids == []
    assert profile.idle_plan == {"messages": [], "timeoutSeconds": 10, "maxSpokenCount": 0}
    assert backend.assistant["voice"]["voiceId"] == "voice-7"
