import httpx
import pytest

from voxforge.main import app

PAYLOAD = {
    "messages": [
        {
            "id": "wamid.1",
            "from": "971501112222",
            "chat_id": "971501112222@s.whatsapp.net",
            "text": {"body": "Where is container MSCU7654321?"},
        },
        {
            "id": "wamid.2",
            "from": "971500000001",
            "from_me": True,
            "text": {"body": "our own echo"},
        },
    ]
}


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_inbound_message_is_answered_through_a_capability(services, backend) -> None:
    backend.reply_with(
        {
            "action": "execute_capability",
            "capability": "check_shipment_status",
            "arguments": {"shipment_id": "MSCU7654321"},
        }
    )
    async with _client() as client:
        response = await client.post("/whatsapp/incoming", json=PAYLOAD)

    assert response.json() == {"ok": True, "processed": 1}
    assert len(backend.llm_bodies) == 1
    reply = backend.sent[-1]
    assert reply["to"] == "971501112222@s.whatsapp.net"
    assert reply["body"].startswith("Container MSCU7654321: Arrived at Jebel Ali port.")


@pytest.mark.asyncio
async def test_inbound_escalation_notifies_operator(services, backend) -> None:
    backend.reply_with({"action": "escalate", "reason": "customer wants a refund"})
    async with _client() as client:
        response = await client.post("/whatsapp/incoming", json=PAYLOAD)

    assert response.json()["processed"] == 1
    assert backend.operator_messages() == ["Agent: ESCALATION: customer wants a refund"]
    assert "escalated this to our operations team" in backend.sent[-1]["body"]


@pytest.mark.asyncio
async def test_payload_without_messages_is_a_no_op(services, backend) -> None:
    async with _client() as client:
        response = await client.post("/whatsapp/incoming", json={"event": {"type": "statuses"}})
    assert response.json() == {"ok": True, "processed": 0}
    assert backend.llm_bodies == []
