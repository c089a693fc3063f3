"""A failed call becomes a new capability the next call can use."""

import json

import httpx
import pytest

from voxforge.main import app

CALLER = "+971509999999"

REASONING_REPLY = {
    "failures": ["Agent could not quote demurrage charges -> FIX: add quote_demurrage"],
    "changes": ["Instructions cover demurrage", "Created quote_demurrage"],
    "configChanges": {
        "instructions": "You are Ruya Logistics' agent. Use quote_demurrage for storage fees.",
        "voiceRate": 0.9,
        "idlePlan": {"messages": ["Take your time."], "timeoutSeconds": 7, "maxSpokenCount": 2},
    },
    "newCapabilities": [
        {
            "name": "quote_demurrage",
            "description": "Quote demurrage for a container by days overdue",
            "parameterSchema": {
                "type": "object",
                "properties": {
                    "container_id": {"type": "string"},
                    "days": {"type": "number"},
                },
                "required": ["container_id", "days"],
            },
            "handlerSource": [
                {"op": "return", "template": "{{ args.container_id }}: {{ args.days }} days at AED 150/day."}
            ],
        }
    ],
}


@pytest.mark.asyncio
async def test_failed_call_improves_the_agent(services, backend) -> None:
    backend.calls["call-42"] = {
        "id": "call-42",
        "status": "ended",
        "endedReason": "customer-ended-call",
        "transcript": "User: How much demurrage for CONU1234567?\nAI: I can't help with that.",
        "customer": {"number": CALLER},
    }
    backend.reply_with(REASONING_REPLY)

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as client:
        scheduled = await client.post(
            "/voice/server-message",
            json={
                "message": {
                    "type": "end-of-call-report",
                    "endedReason": "customer-ended-call",
                    "call": {"id": "call-42", "customer": {"number": CALLER}},
                }
            },
        )
        assert scheduled.json()["improvement"] == "scheduled"
        await services.runner.join()

        tool = await client.post(
            "/voice/tool-calls",
            json={
                "message": {
                    "type": "tool-calls",
                    "toolCallList": [
                        {
                            "id": "tc-9",
                            "function": {
                                "name": "quote_demurrage",
                                "arguments": json.dumps({"container_id": "CONU1234567", "days": 3}),
                            },
                        }
                    ],
                }
            },
        )
        assert tool.json()["results"][0]["result"] == "CONU1234567: 3 days at AED 150/day."

        improvements = (await client.get("/improvements", params={"outcome_id": "call-42"})).json()
        state = (await client.get("/state")).json()

    assert improvements["count"] == 1
    record = improvements["items"][0]
    assert record["capabilitiesCreated"] == ["quote_demurrage"]
    assert record["callbackTriggered"] is True
    assert record["profileAfter"]["voiceRate"] == 0.9
    assert record["profileAfter"]["idlePlan"] == {
        "messages": ["Take your time."],
        "timeoutSeconds": 7.0,
        "maxSpokenCount": 2,
    }

    assert len(backend.patches) == 1
    patch = backend.patches[0]
    assert patch["voice"] == {"provider": "11labs", "voiceId": "voice-7", "speed": 0.9}
    assert patch["model"]["toolIds"] == ["tool-seed"]
    assert backend.assistant["metadata"] == {"team": "ops"}

    assert state["current"]["voiceRate"] == 0.9
    assert [item["name"] for item in state["synthesizedCapabilities"]] == ["quote_demurrage"]
    assert backend.outbound_calls[0]["assistantId"] == "asst-1"
