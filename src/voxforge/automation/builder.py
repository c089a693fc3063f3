"""Builds the workflow graph for an automation spec.

The graph is a linear chain: webhook trigger node, one HTTP request node per
step in order, then a terminal respond node.
"""

from __future__ import annotations

import json
from typing import Any

from voxforge.automation.types import AutomationSpec

TRIGGER_NODE = "Webhook"
RESPOND_NODE = "Respond"
_X_START = 240
_X_STEP = 240
_Y = 300
_STEP_TIMEOUT_MS = 10000


def _link(target: str) -> dict[str, Any]:
    return {"main": [[{"node": target, "type": "main", "index": 0}]]}


def build_workflow(spec: AutomationSpec) -> dict[str, Any]:
    nodes: list[dict[str, Any]] = [
        {
            "id": "webhook-trigger",
            "name": TRIGGER_NODE,
            "type": "n8n-nodes-base.webhook",
            "typeVersion": 1.1,
            "position": [_X_START, _Y],
            "parameters": {
                "httpMethod": "POST",
                "path": spec.trigger_path,
                "responseMode": "lastNode",
                "options": {},
            },
        }
    ]
    connections: dict[str, Any] = {}
    previous = TRIGGER_NODE
    used_names = {TRIGGER_NODE, RESPOND_NODE}

    for index, step in enumerate(spec.steps):
        node_name = step.name.strip() or f"Step {index + 1}"
        if node_name in used_names:
            node_name = f"{node_name} {index + 1}"
        used_names.add(node_name)
        parameters: dict[str, Any] = {"method": step.method.upper(), "url": step.url}
        if step.headers:
            parameters["sendHeaders"] = True
            parameters["headerParameters"] = {
                "parameters": [{"name": key, "value": value} for key, value in step.headers.items()]
            }
        parameters.update(
            {
                "sendBody": True,
                "specifyBody": "json",
                "jsonBody": step.body_template,
                "options": {"timeout": _STEP_TIMEOUT_MS},
            }
        )
        nodes.append(
            {
                "id": f"step-{index}",
                "name": node_name,
                "type": "n8n-nodes-base.httpRequest",
                "typeVersion": 4.1,
                "position": [_X_START + _X_STEP * (index + 1), _Y],
                "parameters": parameters,
            }
        )
        connections[previous] = _link(node_name)
        previous = node_name

    nodes.append(
        {
            "id": "respond",
            "name": RESPOND_NODE,
            "type": "n8n-nodes-base.respondToWebhook",
            "typeVersion": 1,
            "position": [_X_START + _X_STEP * (len(spec.steps) + 1), _Y],
            "parameters": {
                "respondWith": "json",
                "responseBody": "=" + json.dumps({"sent": True, "workflow": spec.name}),
                "options": {},
            },
        }
    )
    connections[previous] = _link(RESPOND_NODE)

    return {
        "name": spec.name,
        "nodes": nodes,
        "connections": connections,
        "settings": {"executionOrder": "v1"},
    }


def summarize_workflow(workflow: dict[str, Any]) -> str:
    """One block of text per workflow, used as reasoning context."""
    marker = "ACTIVE" if workflow.get("active") else "inactive"
    header = f'  [{marker}] "{workflow.get("name", "")}" ({workflow.get("id", "")})'
    lines = [header]
    nodes = workflow.get("nodes")
    if isinstance(nodes, list):
        for node in nodes:
            if not isinstance(node, dict):
                continue
            params = json.dumps(node.get("parameters", {}))[:200]
            lines.append(f"    - {node.get('name', '')} ({node.get('type', '')}): {params}")
    return "\n".join(lines)
