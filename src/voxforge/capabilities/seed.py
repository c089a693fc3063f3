"""Seed capabilities available from process start."""

from __future__ import annotations

import json
from typing import Any

from voxforge.capabilities.context import TrustedContext
from voxforge.capabilities.registry import CapabilityRegistry
from voxforge.capabilities.types import CapabilityDefinition, Origin, ParameterSpec

# Simulated data; a production deployment would query the TMS instead.
SHIPMENT_STATUSES = {
    "CONU1234567": (
        "Container CONU1234567: Cleared customs at Jebel Ali. "
        "In transit to Al Quoz warehouse. ETA 2 hours."
    ),
    "MSCU7654321": (
        "Container MSCU7654321: Arrived at Jebel Ali port. "
        "Pending customs inspection. ETA clearance: 4 hours."
    ),
    "BK20240001": (
        "Booking BK20240001: 2x 40ft containers. Vessel arrived. "
        "Discharge scheduled for tomorrow 0600."
    ),
}


def _check_shipment_status() -> CapabilityDefinition:
    async def handler(args: dict[str, Any]) -> str:
        shipment_id = str(args.get("shipment_id", "")).strip().upper()
        return SHIPMENT_STATUSES.get(
            shipment_id,
            f"Shipment {shipment_id}: No record found. "
            "Please verify the ID or contact operations.",
        )

    return CapabilityDefinition(
        name="check_shipment_status",
        description="Check the current status of a shipment by container or booking ID",
        handler=handler,
        parameters=[
            ParameterSpec(
                "shipment_id", "string", "Container number or booking reference", required=True
            )
        ],
        origin=Origin.SEED,
    )


def _send_customer_message(context: TrustedContext) -> CapabilityDefinition:
    async def handler(args: dict[str, Any]) -> str:
        phone = str(args.get("phone", ""))
        result = await context.send_message(phone, str(args.get("message", "")))
        if result.get("sent"):
            return f"WhatsApp message sent successfully to {phone}"
        return f"Failed to send WhatsApp message to {phone}"

    return CapabilityDefinition(
        name="send_customer_message",
        description="Send a WhatsApp message to a customer with shipment updates or information",
        handler=handler,
        parameters=[
            ParameterSpec("phone", "string", "Customer phone number with country code", True),
            ParameterSpec("message", "string", "Message to send", True),
        ],
        origin=Origin.SEED,
    )


def _send_email_notification(context: TrustedContext) -> CapabilityDefinition:
    async def handler(args: dict[str, Any]) -> str:
        result = await context.trigger_automation(
            {
                "type": "send_email",
                "to": args.get("to"),
                "subject": args.get("subject"),
                "body": args.get("body"),
            }
        )
        return f"Email workflow triggered for {args.get('to')}. Result: {json.dumps(result)}"

    return CapabilityDefinition(
        name="send_email_notification",
        description="Send an email notification to a customer or internal team via automation",
        handler=handler,
        parameters=[
            ParameterSpec("to", "string", "Recipient email address", True),
            ParameterSpec("subject", "string", "Email subject", True),
            ParameterSpec("body", "string", "Email body text", True),
        ],
        origin=Origin.SEED,
    )


def _escalate_to_operator(context: TrustedContext) -> CapabilityDefinition:
    async def handler(args: dict[str, Any]) -> str:
        await context.notify_operator(
            f"ESCALATION: {args.get('reason', '')}\nContext: {args.get('context') or 'none'}"
        )
        return "Escalated to operator. They will follow up shortly."

    return CapabilityDefinition(
        name="escalate_to_operator",
        description="Escalate an issue to a human operator when the agent cannot handle it",
        handler=handler,
        parameters=[
            ParameterSpec("reason", "string", "Why this needs human attention", True),
            ParameterSpec(
                "context", "string", "Relevant details (customer info, shipment ID, etc.)"
            ),
        ],
        origin=Origin.SEED,
    )


def seed_capabilities(context: TrustedContext) -> list[CapabilityDefinition]:
    return [
        _check_shipment_status(),
        _send_customer_message(context),
        _send_email_notification(context),
        _escalate_to_operator(context),
    ]


def register_seed_capabilities(registry: CapabilityRegistry, context: TrustedContext) -> int:
    definitions = seed_capabilities(context)
    for definition in definitions:
        registry.register(definition)
    return len(definitions)
