"""Workflow deployment adapter."""

from __future__ import annotations

import logging

from voxforge.automation.builder import build_workflow, summarize_workflow
from voxforge.automation.client import AutomationClient
from voxforge.automation.types import AutomationSpec, DeployedAutomation
from voxforge.capabilities.types import CapabilitySpec
from voxforge.errors import AutomationError, AutomationNotConfiguredError, VoxforgeError

logger = logging.getLogger(__name__)

MISSING_CREDENTIALS_REQUEST = (
    "Need AUTOMATION_API_URL and AUTOMATION_API_KEY to create workflows programmatically"
)
CONTEXT_WORKFLOW_LIMIT = 5


class WorkflowDeployer:
    def __init__(self, client: AutomationClient) -> None:
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client.configured

    async def deploy(self, spec: AutomationSpec) -> DeployedAutomation:
        """Create, activate and resolve the callable endpoint of an automation."""
        if not self.client.configured:
            raise AutomationNotConfiguredError(MISSING_CREDENTIALS_REQUEST)
        if not spec.steps:
            raise AutomationError(f'automation "{spec.name}" has no steps')
        created = await self.client.create_workflow(build_workflow(spec))
        deployed_id = str(created["id"])
        await self.client.activate_workflow(deployed_id)
        endpoint = self.client.webhook_url(spec.trigger_path)
        logger.info("Automation %s ready at %s", spec.name, endpoint)
        return DeployedAutomation(
            name=spec.name,
            trigger_path=spec.trigger_path,
            steps=list(spec.steps),
            deployed_id=deployed_id,
            endpoint_url=endpoint,
            active=True,
        )

    async def existing_context(self) -> str:
        if not self.client.configured:
            return "AUTOMATION PLATFORM NOT CONFIGURED"
        try:
            workflows = await self.client.list_workflows()
        except VoxforgeError as exc:
            return f"FAILED TO FETCH: {exc}"
        if not workflows:
            return "NO WORKFLOWS EXIST YET"
        blocks: list[str] = []
        for item in workflows[:CONTEXT_WORKFLOW_LIMIT]:
            workflow_id = str(item.get("id", ""))
            try:
                detail = await self.client.get_workflow(workflow_id) if workflow_id else item
            except VoxforgeError as exc:
                logger.debug("Workflow %s detail unavailable: %s", workflow_id, exc)
                detail = item
            blocks.append(summarize_workflow({**item, **detail}))
        return "\n\n".join(blocks)


def wiring_capability_name(deployed: DeployedAutomation) -> str:
    return deployed.trigger_path.strip("/").replace("-", "_").replace("/", "_")


def wiring_capability_spec(deployed: DeployedAutomation) -> CapabilitySpec:
    """Capability that POSTs ``{to, message}`` to the automation's endpoint."""
    return CapabilitySpec(
        name=wiring_capability_name(deployed),
        description=f"{deployed.name}: triggers the automation via its webhook",
        parameter_schema={
            "type": "object",
            "properties": {
                "to": {"type": "string", "description": "Recipient phone number or identifier"},
                "message": {"type": "string", "description": "Message content to send"},
            },
            "required": ["to", "message"],
        },
        handler_source=[
            {
                "op": "http",
                "method": "POST",
                "url": deployed.endpoint_url,
                "headers": {"Content-Type": "application/json"},
                "body": {"to": "{{ args.to }}", "message": "{{ args.message }}"},
                "save_as": "response",
            },
            {"op": "return", "template": "{{ vars.response }}"},
        ],
    )
