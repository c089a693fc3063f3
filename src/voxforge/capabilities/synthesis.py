"""Capability synthesis over a closed instruction set.

A handler source is a JSON program: a list of instructions, or an object with a
``steps`` list. Each instruction names one ``op``:

- ``http``: ``method``, ``url``, optional ``headers`` and ``body``
- ``send_message``: ``to``, ``text``
- ``notify``: ``text``
- ``trigger_automation``: ``payload``
- ``return``: ``template``

Any instruction may carry ``save_as`` to keep its result. String values are
templates over ``{{ args.<param> }}`` and ``{{ vars.<saved> }}``. Programs are
checked when synthesized; nothing is compiled or evaluated.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from voxforge.capabilities.context import TrustedContext
from voxforge.capabilities.types import (
    CapabilityDefinition,
    CapabilitySpec,
    Origin,
    ParameterSpec,
    parameters_from_schema,
)
from voxforge.errors import CapabilityError, SynthesisError

_TEMPLATE_RE = re.compile(r"\{\{\s*(args|vars)\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,63}$")
_FENCE_RE = re.compile(r"```[a-zA-Z]*\n?")
_HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "http": ("method", "url"),
    "send_message": ("to", "text"),
    "notify": ("text",),
    "trigger_automation": ("payload",),
    "return": ("template",),
}

DEFAULT_MAX_STEPS = 16


@dataclass(slots=True, frozen=True)
class Instruction:
    op: str
    params: dict[str, Any]
    save_as: str | None = None


@dataclass(slots=True)
class Program:
    instructions: list[Instruction]
    parameters: list[ParameterSpec] = field(default_factory=list)

    @property
    def required_args(self) -> list[str]:
        return [param.name for param in self.parameters if param.required]


def _load_source(source: str | list[Any] | dict[str, Any]) -> list[Any]:
    decoded: Any = source
    if isinstance(source, str):
        cleaned = _FENCE_RE.sub("", source).replace("```", "").strip()
        if not cleaned:
            raise SynthesisError("handler source is empty")
        try:
            decoded = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise SynthesisError(f"handler source is not a JSON program: {exc.msg}") from exc
    if isinstance(decoded, dict):
        decoded = decoded.get("steps")
    if not isinstance(decoded, list) or not decoded:
        raise SynthesisError("handler program must be a non-empty list of steps")
    return decoded


def _template_refs(value: Any) -> list[tuple[str, str]]:
    if isinstance(value, str):
        return [(match.group(1), match.group(2)) for match in _TEMPLATE_RE.finditer(value)]
    if isinstance(value, dict):
        return [ref for item in value.values() for ref in _template_refs(item)]
    if isinstance(value, list):
        return [ref for item in value for ref in _template_refs(item)]
    return []


def _check_step(index: int, raw: Any) -> Instruction:
    if not isinstance(raw, dict):
        raise SynthesisError(f"step {index} is not an object")
    op = raw.get("op")
    if op not in _REQUIRED_FIELDS:
        raise SynthesisError(f"step {index}: unknown op {op!r}")
    params = {key: value for key, value in raw.items() if key not in {"op", "save_as"}}
    if op == "return" and "template" not in params and "value" in params:
        params["template"] = params.pop("value")
    for required in _REQUIRED_FIELDS[op]:
        if required not in params:
            raise SynthesisError(f"step {index} ({op}): missing {required!r}")
    if op == "http":
        method = params["method"]
        if not isinstance(method, str) or method.upper() not in _HTTP_METHODS:
            raise SynthesisError(f"step {index} (http): unsupported method {method!r}")
        if not isinstance(params["url"], str) or not params["url"].strip():
            raise SynthesisError(f"step {index} (http): url must be a string")
        headers = params.get("headers", {})
        if not isinstance(headers, dict):
            raise SynthesisError(f"step {index} (http): headers must be an object")
    if op == "trigger_automation" and not isinstance(params["payload"], dict):
        raise SynthesisError(f"step {index} (trigger_automation): payload must be an object")
    for key in ("to", "text", "template"):
        if key in params and not isinstance(params[key], str):
            raise SynthesisError(f"step {index} ({op}): {key} must be a string")
    save_as = raw.get("save_as")
    if save_as is not None and (not isinstance(save_as, str) or not _NAME_RE.fullmatch(save_as)):
        raise SynthesisError(f"step {index}: invalid save_as {save_as!r}")
    return Instruction(op=op, params=params, save_as=save_as)


def compile_program(
    source: str | list[Any] | dict[str, Any],
    parameters: list[ParameterSpec],
    *,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Program:
    raw_steps = _load_source(source)
    if len(raw_steps) > max_steps:
        raise SynthesisError(f"handler program has {len(raw_steps)} steps (limit {max_steps})")

    declared = {param.name for param in parameters}
    saved: set[str] = set()
    instructions: list[Instruction] = []
    for index, raw in enumerate(raw_steps):
        if instructions and instructions[-1].op == "return":
            raise SynthesisError(f"step {index} is unreachable after return")
        instruction = _check_step(index, raw)
        for scope, name in _template_refs(instruction.params):
            if scope == "args" and name not in declared:
                raise SynthesisError(f"step {index}: unknown argument {name!r}")
            if scope == "vars" and name not in saved:
                raise SynthesisError(f"step {index}: {name!r} is used before it is saved")
        if instruction.save_as:
            saved.add(instruction.save_as)
        instructions.append(instruction)
    return Program(instructions=instructions, parameters=list(parameters))


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def render(value: Any, args: dict[str, Any], variables: dict[str, str]) -> Any:
    if isinstance(value, str):
        def _sub(match: re.Match[str]) -> str:
            scope, name = match.group(1), match.group(2)
            source = args if scope == "args" else variables
            return _stringify(source.get(name))

        return _TEMPLATE_RE.sub(_sub, value)
    if isinstance(value, dict):
        return {key: render(item, args, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [render(item, args, variables) for item in value]
    return value


async def run_program(program: Program, context: TrustedContext, args: dict[str, Any]) -> str:
    missing = [name for name in program.required_args if name not in args]
    if missing:
        raise CapabilityError(f"missing required arguments: {', '.join(missing)}")

    variables: dict[str, str] = {}
    last = ""
    for instruction in program.instructions:
        params = render(instruction.params, args, variables)
        if instruction.op == "return":
            return str(params["template"])
        if instruction.op == "http":
            last = await context.http_request(
                str(params["method"]).upper(),
                str(params["url"]),
                {str(k): _stringify(v) for k, v in params.get("headers", {}).items()},
                params.get("body"),
            )
        elif instruction.op == "send_message":
            outcome = await context.send_message(params["to"], params["text"])
            last = "sent" if outcome.get("sent") else "failed"
        elif instruction.op == "notify":
            await context.notify_operator(params["text"])
            last = "notified"
        elif instruction.op == "trigger_automation":
            last = _stringify(await context.trigger_automation(params["payload"]))
        if instruction.save_as:
            variables[instruction.save_as] = last
    return last or "done"


def synthesize(
    spec: CapabilitySpec,
    context: TrustedContext,
    *,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> CapabilityDefinition:
    """Turn a declarative spec into a registered-ready synthesized capability."""
    if not _NAME_RE.fullmatch(spec.name):
        raise SynthesisError(f"invalid capability name {spec.name!r}")
    parameters = parameters_from_schema(spec.parameter_schema)
    program = compile_program(spec.handler_source, parameters, max_steps=max_steps)

    async def handler(args: dict[str, Any]) -> str:
        return await run_program(program, context, args)

    return CapabilityDefinition(
        name=spec.name,
        description=spec.description,
        handler=handler,
        parameters=parameters,
        origin=Origin.SYNTHESIZED,
    )


def smoke_test_arguments(parameters: list[ParameterSpec]) -> dict[str, Any]:
    """Synthetic arguments: a filler string for strings, zero for everything else."""
    return {
        param.name: "test" if param.type == "string" else 0
        for param in parameters
    }
