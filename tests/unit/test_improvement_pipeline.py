import json

import pytest

from voxforge.automation.deploy import MISSING_CREDENTIALS_REQUEST
from voxforge.errors import OutcomeFetchError, ProfileFetchError, ProviderError
from voxforge.improve.pipeline import SelfImprovementPipeline
from voxforge.improve.types import RunState
from voxforge.reasoning.gateway import PARSE_FAILURE

NEW_INSTRUCTIONS = (
    "You are Ruya Logistics' dispatcher. Confirm container numbers digit by digit. "
    "On callbacks, apologize for the last call first."
)

CUSTOMS_CAPABILITY = {
    "name": "check_customs_hold",
    "description": "Check whether a container is held at customs",
    "parameterSchema": {
        "type": "object",
        "properties": {"container_id": {"type": "string", "description": "Container number"}},
        "required": ["container_id"],
    },
    "handlerSource": json.dumps(
        [{"op": "return", "template": "Container {{ args.container_id }} has no customs hold."}]
    ),
}

CHANGE_SET = {
    "failures": ["Agent could not check customs holds", "Greeting did not name the company"],
    "changes": ["Added customs hold lookup", "Rewrote greeting"],
    "configChanges": {"instructions": NEW_INSTRUCTIONS, "greeting": "Ruya Logistics, how can I help?"},
    "newCapabilities": [CUSTOMS_CAPABILITY],
    "newAutomations": [],
    "resourceRequests": [],
}

DELAY_AUTOMATION = {
    "name": "Customer delay notice",
    "triggerPath": "notify-customer-delay",
    "steps": [
        {
            "name": "Send WhatsApp",
            "url": "https://gate.whapi.cloud/messages/text",
            "bodyTemplate": '{"to": "{{$json.body.to}}", "body": "{{$json.body.message}}"}',
        }
    ],
}

CALLER = "+971509999999"


def _add_call(backend, call_id: str = "call-1", reason: str = "customer-did-not-answer") -> None:
    backend.calls[call_id] = {
        "id": call_id,
        "status": "ended",
        "endedReason": reason,
        "transcript": "AI: Hello.\nUser: Is CONU1234567 held at customs?\nAI: I cannot check that.",
        "customer": {"number": CALLER},
    }


def _steps(record) -> list[tuple[str, str]]:
    return [(entry.step, entry.status.value) for entry in record.step_log]


@pytest.mark.asyncio
async def test_full_run_applies_changes_creates_capability_and_calls_back(services, backend) -> None:
    _add_call(backend)
    backend.reply_with(CHANGE_SET)

    record = await services.pipeline.run_for_outcome("call-1", "asst-1")

    assert record.state is RunState.COMPLETE
    assert record.outcome_id == "call-1"
    assert record.contact == CALLER
    assert record.capabilities_created == ["check_customs_hold"]
    assert record.callback_triggered is True
    assert _steps(record) == [
        ("fetch_outcome", "ok"),
        ("fetch_profile", "ok"),
        ("enumerate_capabilities", "ok"),
        ("invoke_reasoning", "ok"),
        ("apply_configuration", "ok"),
        ("synthesize_capability", "ok"),
        ("smoke_test_capability", "ok"),
        ("deploy_automation", "skipped"),
        ("request_resources", "skipped"),
        ("persist_record", "ok"),
        ("notify_operator", "ok"),
        ("trigger_callback", "ok"),
    ]
    assert record.profile_before["instructions"] == "You are a logistics assistant."
    assert record.profile_after["instructions"] == NEW_INSTRUCTIONS
    assert record.profile_after["greeting"] == "Ruya Logistics, how can I help?"
    assert record.profile_after["generationLimit"] == record.profile_before["generationLimit"]

    assert len(backend.patches) == 1
    assert backend.assistant["firstMessage"] == "Ruya Logistics, how can I help?"
    assert backend.assistant["model"]["messages"][0]["content"] == NEW_INSTRUCTIONS
    assert backend.assistant["model"]["toolIds"] == ["tool-seed"]

    assert services.registry.lookup("check_customs_hold").is_synthesized
    assert await services.runtime.invoke("check_customs_hold", {"container_id": "CONU1234567"}) == (
        "Container CONU1234567 has no customs hold."
    )
    assert services.history.list() == [record]
    assert backend.outbound_calls == [
        {"assistantId": "asst-1", "customer": {"number": CALLER}, "phoneNumberId": "phone-1"}
    ]

    summary = backend.operator_messages()[-1]
    assert summary.startswith("Agent: Self-improvement complete (outcome call-1)")
    assert f"Callback to {CALLER} scheduled." in summary
    assert "  - Agent could not check customs holds" in summary


@pytest.mark.asyncio
async def test_reasoning_prompt_carries_transcript_and_capabilities(services, backend) -> None:
    _add_call(backend)
    backend.reply_with(CHANGE_SET)
    await services.pipeline.run_for_outcome("call-1", "asst-1")
    body = backend.llm_bodies[0]
    assert "Is CONU1234567 held at customs?" in body["messages"][0]["content"]
    assert "- check_shipment_status:" in body["system"]
    assert "AUTOMATION PLATFORM NOT CONFIGURED" in body["system"]


@pytest.mark.asyncio
async def test_outcome_fetch_failure_aborts_without_persisting(services, backend) -> None:
    with pytest.raises(OutcomeFetchError):
        await services.pipeline.run_for_outcome("missing", "asst-1")
    assert len(services.history) == 0
    assert backend.llm_bodies == []
    assert backend.patches == []


@pytest.mark.asyncio
async def test_profile_fetch_failure_aborts(services, backend) -> None:
    _add_call(backend)
    backend.fail.add("get_assistant")
    with pytest.raises(ProfileFetchError):
        await services.pipeline.run_for_outcome("call-1", "asst-1")
    assert len(services.history) == 0
    assert backend.llm_bodies == []


@pytest.mark.asyncio
async def test_reasoning_transport_failure_aborts(services, backend) -> None:
    _add_call(backend)
    backend.fail.add("llm")
    with pytest.raises(ProviderError):
        await services.pipeline.run_for_outcome("call-1", "asst-1")
    assert len(services.history) == 0
    assert backend.patches == []
    assert backend.outbound_calls == []


@pytest.mark.asyncio
async def test_one_bad_capability_does_not_abort_the_run(services, backend) -> None:
    _add_call(backend)
    broken = {
        "name": "run_shell",
        "description": "Tries to run code",
        "handlerSource": "import subprocess",
    }
    backend.reply_with({**CHANGE_SET, "newCapabilities": [CUSTOMS_CAPABILITY, broken]})

    record = await services.pipeline.run_for_outcome("call-1", "asst-1")

    assert record.state is RunState.COMPLETE
    assert record.capabilities_created == ["check_customs_hold"]
    errors = [entry for entry in record.step_log if entry.status.value == "error"]
    assert [entry.step for entry in errors] == ["synthesize_capability"]
    assert 'Failed to create "run_shell"' in errors[0].detail
    assert "run_shell" not in services.registry
    assert len(services.history) == 1


@pytest.mark.asyncio
async def test_malformed_capability_request_is_logged_and_skipped(services, backend) -> None:
    _add_call(backend)
    incomplete = {"name": "broken_lookup", "description": "Missing its handler"}
    backend.reply_with({**CHANGE_SET, "newCapabilities": [CUSTOMS_CAPABILITY, incomplete]})

    record = await services.pipeline.run_for_outcome("call-1", "asst-1")

    assert record.state is RunState.COMPLETE
    assert record.failures != [PARSE_FAILURE]
    assert ("invoke_reasoning", "ok") in _steps(record)
    assert record.capabilities_created == ["check_customs_hold"]
    errors = [entry for entry in record.step_log if entry.status.value == "error"]
    assert [entry.step for entry in errors] == ["synthesize_capability"]
    assert 'Invalid capability request "broken_lookup"' in errors[0].detail
    assert "handlerSource" in errors[0].detail
    assert record.profile_after["instructions"] == NEW_INSTRUCTIONS
    assert backend.assistant["model"]["messages"][0]["content"] == NEW_INSTRUCTIONS


@pytest.mark.asyncio
async def test_unparseable_reasoning_keeps_current_instructions(services, backend) -> None:
    backend.reply_with("I think the agent should be nicer.")

    record = await services.pipeline.run_for_transcript("User: hello?\nAI: ...", "asst-1")

    assert record.outcome_id == "manual"
    assert record.failures == [PARSE_FAILURE]
    assert ("invoke_reasoning", "error") in _steps(record)
    assert record.raw_reasoning == "I think the agent should be nicer."
    assert backend.assistant["model"]["messages"][0]["content"] == "You are a logistics assistant."
    assert record.profile_after == record.profile_before
    assert len(services.history) == 1


@pytest.mark.asyncio
async def test_configuration_write_failure_is_recorded(services, backend) -> None:
    _add_call(backend)
    backend.fail.add("patch")
    backend.reply_with(CHANGE_SET)

    record = await services.pipeline.run_for_outcome("call-1", "asst-1")

    assert ("apply_configuration", "error") in _steps(record)
    assert record.profile_after == record.profile_before
    assert record.capabilities_created == ["check_customs_hold"]
    assert record.state is RunState.COMPLETE


@pytest.mark.asyncio
async def test_callback_failure_notifies_operator_separately(services, backend) -> None:
    _add_call(backend)
    backend.fail.add("outbound")
    backend.reply_with(CHANGE_SET)

    record = await services.pipeline.run_for_outcome("call-1", "asst-1")

    assert record.callback_triggered is False
    assert _steps(record)[-1] == ("trigger_callback", "error")
    messages = backend.operator_messages()
    assert "scheduled" in messages[-2]
    assert messages[-1].startswith(f"Agent: Failed to call customer back at {CALLER}")
    assert services.history.list()[0].callback_triggered is False


@pytest.mark.asyncio
async def test_callback_waits_for_settle_delay(services, backend, settings) -> None:
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    pipeline = SelfImprovementPipeline(
        settings.model_copy(update={"callback_settle_seconds": 3.0}),
        voice=services.voice,
        tuning=services.tuning,
        registry=services.registry,
        factory=services.factory,
        deployer=services.deployer,
        gateway=services.gateway,
        notifier=services.notifier,
        history=services.history,
        sleep=fake_sleep,
    )
    backend.reply_with({"failures": [], "changes": []})

    record = await pipeline.run_for_transcript("User: hi", "asst-1", contact=CALLER)

    assert delays == [3.0]
    assert record.callback_triggered is True
    assert ("apply_configuration", "skipped") in _steps(record)


@pytest.mark.asyncio
async def test_manual_run_without_contact_skips_callback(services, backend) -> None:
    backend.reply_with({"failures": ["none"], "changes": []})
    record = await services.pipeline.run_for_transcript("User: hi", "asst-1")
    assert _steps(record)[-1] == ("trigger_callback", "skipped")
    assert backend.outbound_calls == []
    assert "No contact address; skipping callback." in backend.operator_messages()[-1]


@pytest.mark.asyncio
async def test_automation_without_credentials_requests_them(services, backend) -> None:
    backend.reply_with({**CHANGE_SET, "newAutomations": [DELAY_AUTOMATION]})

    record = await services.pipeline.run_for_transcript("User: tell me about delays", "asst-1")

    steps = _steps(record)
    assert ("deploy_automation", "skipped") in steps
    assert ("request_resources", "ok") in steps
    assert record.automations_deployed == []
    assert f"Agent: RESOURCE REQUEST: {MISSING_CREDENTIALS_REQUEST}" in backend.operator_messages()


@pytest.mark.asyncio
@pytest.mark.usefixtures("automation_env")
async def test_automation_is_deployed_and_wired(services, backend) -> None:
    backend.reply_with({"failures": ["no delay notices"], "newAutomations": [DELAY_AUTOMATION]})

    record = await services.pipeline.run_for_transcript("User: tell me about delays", "asst-1")

    endpoint = "https://automation.test/webhook/notify-customer-delay"
    assert record.automations_deployed == [f"Customer delay notice -> {endpoint}"]
    assert record.capabilities_created == ["notify_customer_delay"]
    steps = _steps(record)
    assert ("deploy_automation", "ok") in steps
    assert ("wire_automation", "ok") in steps
    assert ("smoke_test_capability", "ok") in steps
    assert backend.activated == ["wf-1"]
    assert backend.hooks == [("/webhook/notify-customer-delay", {"to": "test", "message": "test"})]
    result = await services.runtime.invoke(
        "notify_customer_delay", {"to": CALLER, "message": "Vessel delayed 6 hours"}
    )
    assert json.loads(result) == {"sent": True}


@pytest.mark.asyncio
@pytest.mark.usefixtures("automation_env")
async def test_structured_body_template_deploys_and_invalid_automation_is_skipped(
    services, backend
) -> None:
    structured = {
        **DELAY_AUTOMATION,
        "steps": [
            {
                "name": "Send WhatsApp",
                "url": "https://gate.whapi.cloud/messages/text",
                "bodyTemplate": {"to": "{{$json.body.to}}", "body": "{{$json.body.message}}"},
            }
        ],
    }
    no_trigger = {"name": "Orphan workflow", "steps": DELAY_AUTOMATION["steps"]}
    backend.reply_with({"failures": ["no delay notices"], "newAutomations": [no_trigger, structured]})

    record = await services.pipeline.run_for_transcript("User: tell me about delays", "asst-1")

    endpoint = "https://automation.test/webhook/notify-customer-delay"
    assert record.automations_deployed == [f"Customer delay notice -> {endpoint}"]
    assert record.capabilities_created == ["notify_customer_delay"]
    errors = [entry for entry in record.step_log if entry.status.value == "error"]
    assert [entry.step for entry in errors] == ["deploy_automation"]
    assert 'Invalid automation request "Orphan workflow"' in errors[0].detail
    http_node = backend.workflows[0]["nodes"][1]
    assert json.loads(http_node["parameters"]["jsonBody"]) == {
        "to": "{{$json.body.to}}",
        "body": "{{$json.body.message}}",
    }
