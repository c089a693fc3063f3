"""Service container and singleton accessors."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from voxforge.automation.client import AutomationClient
from voxforge.automation.deploy import WorkflowDeployer
from voxforge.capabilities.context import TrustedContext, make_http_request
from voxforge.capabilities.factory import CapabilityFactory
from voxforge.capabilities.registry import CapabilityRegistry
from voxforge.capabilities.runtime import CapabilityRuntime
from voxforge.capabilities.seed import register_seed_capabilities
from voxforge.channels.operator import OperatorNotifier
from voxforge.channels.whatsapp.adapter import WhapiAdapter
from voxforge.config import Settings, get_settings
from voxforge.improve.history import ImprovementHistory
from voxforge.improve.pipeline import SelfImprovementPipeline
from voxforge.improve.runner import PipelineRunner
from voxforge.profile.tuning import TuningAdapter
from voxforge.providers.factory import build_router
from voxforge.reasoning.brain import Brain
from voxforge.reasoning.gateway import ReasoningGateway
from voxforge.voice.client import VoiceClient

logger = logging.getLogger(__name__)

_services: Services | None = None


@dataclass(slots=True)
class Services:
    settings: Settings
    registry: CapabilityRegistry
    history: ImprovementHistory
    voice: VoiceClient
    channel: WhapiAdapter
    notifier: OperatorNotifier
    automation: AutomationClient
    deployer: WorkflowDeployer
    runtime: CapabilityRuntime
    factory: CapabilityFactory
    tuning: TuningAdapter
    gateway: ReasoningGateway
    brain: Brain
    pipeline: SelfImprovementPipeline
    runner: PipelineRunner

    @property
    def profile_id(self) -> str:
        return self.settings.voice_assistant_id.strip()


def build_services(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    """Wire every collaborator. ``transport`` is shared by all outbound HTTP clients."""
    registry = CapabilityRegistry()
    history = ImprovementHistory()
    voice = VoiceClient(settings, transport=transport)
    channel = WhapiAdapter(settings, transport=transport)
    notifier = OperatorNotifier(channel, settings.operator_contact)
    automation = AutomationClient(settings, transport=transport)
    deployer = WorkflowDeployer(automation)

    async def notify_operator(text: str) -> None:
        await notifier.notify(text)

    context = TrustedContext(
        send_message=channel.send_text,
        notify_operator=notify_operator,
        trigger_automation=automation.trigger,
        http_request=make_http_request(
            float(settings.synthesis_http_timeout_seconds), transport=transport
        ),
    )
    runtime = CapabilityRuntime(registry)
    factory = CapabilityFactory(settings, registry, context, voice, notifier)
    tuning = TuningAdapter(voice)
    router = build_router(settings, transport=transport)
    gateway = ReasoningGateway(
        router,
        business_context=settings.business_context,
        max_tokens=settings.reasoning_max_tokens,
    )
    brain = Brain(
        router,
        runtime,
        factory,
        notifier,
        business_context=settings.business_context,
    )
    pipeline = SelfImprovementPipeline(
        settings,
        voice=voice,
        tuning=tuning,
        registry=registry,
        factory=factory,
        deployer=deployer,
        gateway=gateway,
        notifier=notifier,
        history=history,
    )
    runner = PipelineRunner(notifier)

    seeded = register_seed_capabilities(registry, context)
    logger.info("%d seed capabilities loaded", seeded)

    return Services(
        settings=settings,
        registry=registry,
        history=history,
        voice=voice,
        channel=channel,
        notifier=notifier,
        automation=automation,
        deployer=deployer,
        runtime=runtime,
        factory=factory,
        tuning=tuning,
        gateway=gateway,
        brain=brain,
        pipeline=pipeline,
        runner=runner,
    )


def install_services(services: Services | None) -> None:
    global _services
    _services = services


def get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services(get_settings())
    return _services
