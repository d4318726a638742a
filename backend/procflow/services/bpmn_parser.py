"""Parse BPMN 2.0 XML into a BusinessProcess.

Matching is done on local element names so documents work with or without a
``bpmn:`` prefix and whatever namespace URI the modelling tool wrote.
"""

from __future__ import annotations

import logging
from xml.etree.ElementTree import Element

from procflow.schemas.workflow import (
    BusinessProcess,
    ProcessNode,
    ProcessTransition,
    generate_id,
)
from procflow.services.parser_utils import local_name, parse_xml, slugify

logger = logging.getLogger(__name__)

# role -> (BPMN element local names, default display name)
NODE_ROLES: tuple[tuple[str, frozenset[str], str], ...] = (
    ("start", frozenset({"startEvent"}), "Start"),
    ("task", frozenset({"task", "userTask", "serviceTask"}), "Task"),
    ("gateway", frozenset({"exclusiveGateway", "parallelGateway"}), "Gateway"),
    ("end", frozenset({"endEvent"}), "End"),
)


def _child(elem: Element, name: str) -> Element | None:
    for child in elem:
        if local_name(child.tag) == name:
            return child
    return None


def _child_text(elem: Element, name: str) -> str | None:
    child = _child(elem, name)
    if child is None or not child.text or not child.text.strip():
        return None
    return child.text.strip()


def _lane_map(root: Element) -> dict[str, str]:
    """element id -> lane name"""
    lanes: dict[str, str] = {}
    for lane in root.iter():
        if local_name(lane.tag) != "lane":
            continue
        lane_name = lane.get("name", "")
        # direct children only; nested laneSets are visited on their own
        for ref in lane:
            if local_name(ref.tag) == "flowNodeRef" and ref.text:
                lanes[ref.text.strip()] = lane_name
    return lanes


def parse_bpmn_workflow(content: str) -> BusinessProcess:
    root = parse_xml(content, "BPMN")
    lanes = _lane_map(root)
    elements = list(root.iter())

    nodes: list[ProcessNode] = []
    seen: set[str] = set()
    for node_type, tags, default_name in NODE_ROLES:
        for elem in elements:
            if local_name(elem.tag) not in tags:
                continue
            node_id = elem.get("id") or generate_id()
            if node_id in seen:
                logger.debug("Skipping duplicate BPMN element id %s", node_id)
                continue
            seen.add(node_id)
            nodes.append(
                ProcessNode(
                    id=node_id,
                    type=node_type,
                    name=elem.get("name") or default_name,
                    description=_child_text(elem, "documentation"),
                    assignee=lanes.get(node_id) or None,
                )
            )

    transitions: list[ProcessTransition] = []
    for elem in elements:
        if local_name(elem.tag) != "sequenceFlow":
            continue
        source_ref = elem.get("sourceRef")
        target_ref = elem.get("targetRef")
        if not source_ref or not target_ref:
            continue
        transitions.append(
            ProcessTransition(
                id=elem.get("id") or generate_id(),
                from_=source_ref,
                to=target_ref,
                label=elem.get("name") or None,
                condition=_child_text(elem, "conditionExpression"),
            )
        )

    process_name = "BPMN Workflow"
    for elem in elements:
        if local_name(elem.tag) == "process":
            process_name = elem.get("name") or process_name
            break

    return BusinessProcess(
        name=process_name,
        code=slugify(process_name),
        description="Imported from BPMN",
        nodes=nodes,
        transitions=transitions,
    )
