"""Deliberately weak baseline profile and reset."""

from __future__ import annotations

import logging
from typing import Any

from voxforge.capabilities.registry import CapabilityRegistry
from voxforge.improve.history import ImprovementHistory
from voxforge.profile.tuning import TuningAdapter
from voxforge.profile.types import IdlePlan, ProfileChanges

logger = logging.getLogger(__name__)

BASELINE = ProfileChanges(
    instructions=(
        "You are a logistics assistant for Ruya Logistics in Dubai. You help customers "
        "with shipping and container inquiries from Jebel Ali port."
    ),
    generation_limit=250,
    voice_rate=1.0,
    greeting="Hello, this is Ruya Logistics.",
    silence_timeout_seconds=10,
    bound_capability_ids=[],
    idle_plan=IdlePlan(messages=[], timeout_seconds=10, max_spoken_count=0),
)


async def reset_to_baseline(
    profile_id: str,
    tuning: TuningAdapter,
    registry: CapabilityRegistry,
    history: ImprovementHistory,
) -> dict[str, Any]:
    """Apply the baseline, drop synthesized capabilities and wipe history."""
    logger.info("Resetting profile %s to baseline", profile_id)
    await tuning.apply(profile_id, BASELINE)
    removed = registry.clear_synthesized()
    cleared = history.clear()
    logger.info(
        "Baseline restored: %d synthesized capabilities removed, %d records cleared",
        len(removed),
        cleared,
    )
    return {"removedCapabilities": removed, "clearedRecords": cleared}
