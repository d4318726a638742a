"""Parse Windows Workflow Foundation (WF4) XAML state machines.

States become nodes and each state's ``State.Transitions`` become outgoing
transitions. A transition names its target either inline
(``To="{x:Reference __ReferenceID3}"``) or by nesting the target state under
``Transition.To``; the same state therefore shows up several times in the
document and only its first occurrence is kept.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from xml.etree.ElementTree import Element

from procflow.schemas.workflow import (
    BusinessProcess,
    NodeType,
    ProcessNode,
    ProcessTransition,
    generate_id,
)
from procflow.services.parser_utils import local_attr, local_name, parse_xml, slugify

logger = logging.getLogger(__name__)

_REFERENCE = re.compile(r"\{x:Reference\s+([^\s}]+)\s*\}")
_LABEL_PREFIX = re.compile(r"^B/Mark:?\s*", re.IGNORECASE)
_ACTION_KEYWORD = re.compile(
    r"Submit|Approve|Decline|Close|Reopen|Request|Confirm|Investigation",
    re.IGNORECASE,
)

MAX_LABEL_LENGTH = 40
TRUNCATED_LABEL_LENGTH = 35

END_KEYWORDS = ("close",)
GATEWAY_KEYWORDS = ("check", "gateway")

DEFAULT_PROCESS_NAME = "Incident Workflow"


@dataclass
class _ParsedTransition:
    display_name: str
    to_ref: str | None


@dataclass
class _ParsedState:
    ref_id: str
    name: str
    transitions: list[_ParsedTransition] = field(default_factory=list)


def _children(elem: Element, name: str) -> list[Element]:
    return [child for child in elem if local_name(child.tag) == name]


def _resolve_reference(value: str | None) -> str | None:
    if not value:
        return None
    match = _REFERENCE.search(value)
    return match.group(1) if match else value.strip() or None


def _nested_reference(container: Element) -> str | None:
    """Target of a ``<Transition.To>`` / ``<StateMachine.InitialState>`` block."""
    for child in container:
        tag = local_name(child.tag)
        if tag == "State":
            return local_attr(child, "Name")
        if tag == "Reference" and child.text:
            return child.text.strip()
    return None


def _parse_transition(elem: Element) -> _ParsedTransition:
    to_ref = _resolve_reference(elem.get("To"))
    if not to_ref:
        for block in _children(elem, "Transition.To"):
            to_ref = _nested_reference(block)
            if to_ref:
                break
    return _ParsedTransition(display_name=elem.get("DisplayName", ""), to_ref=to_ref)


def _extract_states(root: Element) -> list[_ParsedState]:
    states: list[_ParsedState] = []
    seen: set[str] = set()
    for elem in root.iter():
        if local_name(elem.tag) != "State":
            continue
        ref_id = local_attr(elem, "Name") or generate_id()
        if ref_id in seen:
            continue
        seen.add(ref_id)

        transitions = [
            _parse_transition(trans)
            for block in _children(elem, "State.Transitions")
            for trans in _children(block, "Transition")
        ]
        states.append(
            _ParsedState(
                ref_id=ref_id,
                name=elem.get("DisplayName") or "Unknown",
                transitions=transitions,
            )
        )
    return states


def _initial_ref(machine: Element | None) -> str | None:
    if machine is None:
        return None
    for block in _children(machine, "StateMachine.InitialState"):
        ref = _nested_reference(block)
        if ref:
            return ref
    return _resolve_reference(machine.get("InitialState"))


def _node_type(state: _ParsedState, initial_ref: str | None) -> NodeType:
    if state.ref_id == initial_ref:
        return "start"
    name = state.name.lower()
    if any(keyword in name for keyword in END_KEYWORDS):
        return "end"
    if any(keyword in name for keyword in GATEWAY_KEYWORDS):
        return "gateway"
    return "task"


def clean_transition_label(display_name: str) -> str:
    """Make a WF transition DisplayName presentable as an edge label."""
    label = html.unescape(_LABEL_PREFIX.sub("", display_name))

    if len(label) > MAX_LABEL_LENGTH:
        match = _ACTION_KEYWORD.search(label)
        if match:
            return match.group(0)
        return label[:TRUNCATED_LABEL_LENGTH] + "..."

    return label or "transition"


def parse_xaml_workflow(content: str) -> BusinessProcess:
    root = parse_xml(content, "XAML")
    machine = next((e for e in root.iter() if local_name(e.tag) == "StateMachine"), None)
    states = _extract_states(root)
    by_ref = {state.ref_id: state for state in states}
    initial_ref = _initial_ref(machine)

    nodes: list[ProcessNode] = []
    transitions: list[ProcessTransition] = []
    visited: set[str] = set()

    def emit(state: _ParsedState) -> None:
        visited.add(state.ref_id)
        nodes.append(
            ProcessNode(id=state.ref_id, type=_node_type(state, initial_ref), name=state.name)
        )

    def walk(start: _ParsedState) -> None:
        # Depth-first along transitions, in declaration order
        emit(start)
        stack = [iter(start.transitions)]
        owners = [start]
        while stack:
            for trans in stack[-1]:
                if not trans.to_ref:
                    continue
                transitions.append(
                    ProcessTransition(
                        id=f"transition-{len(transitions)}",
                        from_=owners[-1].ref_id,
                        to=trans.to_ref,
                        label=clean_transition_label(trans.display_name),
                    )
                )
                target = by_ref.get(trans.to_ref)
                if target is not None and target.ref_id not in visited:
                    emit(target)
                    stack.append(iter(target.transitions))
                    owners.append(target)
                    break
            else:
                stack.pop()
                owners.pop()

    if initial_ref and initial_ref in by_ref:
        walk(by_ref[initial_ref])
    elif initial_ref:
        logger.warning("XAML initial state %s not found among states", initial_ref)

    for state in states:
        if state.ref_id not in visited:
            walk(state)

    name = DEFAULT_PROCESS_NAME
    for elem in (machine, root):
        if elem is not None and elem.get("DisplayName"):
            name = elem.get("DisplayName")
            break

    return BusinessProcess(
        name=name,
        code=slugify(name),
        description="Imported from XAML state machine",
        nodes=nodes,
        transitions=transitions,
    )
