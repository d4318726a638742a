"""Universal intake for workflow definitions.

Detects the input format, runs the matching parser, collects advisory
warnings and lays the result out. Every parser failure is converted into a
``success=False`` result here; callers never see a parser exception or a
half-built workflow.
"""

from __future__ import annotations

import logging
import time

from procflow.core.metrics import (
    workflow_normalizations_total,
    workflow_normalize_duration_seconds,
)
from procflow.schemas.workflow import BusinessProcess, NormalizationResult, WorkflowFormat
from procflow.services.bpmn_parser import parse_bpmn_workflow
from procflow.services.flowchart_parser import parse_mermaid_workflow
from procflow.services.format_detector import detect_format
from procflow.services.json_workflow_parser import parse_json_workflow
from procflow.services.workflow_errors import UnsupportedFormatError, WorkflowParseError
from procflow.services.workflow_layout import (
    IntrinsicLayoutBackend,
    LayoutBackend,
    LayoutOptions,
    apply_layout,
)
from procflow.services.workflow_validator import validate_workflow
from procflow.services.xaml_parser import parse_xaml_workflow

logger = logging.getLogger(__name__)

NATURAL_LANGUAGE_ERROR = (
    "Natural language workflows require AI interpretation. "
    "Use the chat to describe your workflow."
)


def parse_workflow(content: str, fmt: WorkflowFormat) -> BusinessProcess:
    """Dispatch *content* to the parser for *fmt*."""
    if fmt is WorkflowFormat.XAML:
        return parse_xaml_workflow(content)
    if fmt is WorkflowFormat.BPMN:
        return parse_bpmn_workflow(content)
    if fmt is WorkflowFormat.JSON:
        return parse_json_workflow(content)
    if fmt is WorkflowFormat.MERMAID:
        return parse_mermaid_workflow(content)
    if fmt is WorkflowFormat.NATURAL:
        raise UnsupportedFormatError(NATURAL_LANGUAGE_ERROR)
    raise UnsupportedFormatError(f"Unsupported format: {fmt}")


def _parse_and_validate(
    content: str, fmt: WorkflowFormat
) -> tuple[BusinessProcess | None, list[str], str | None]:
    extra = {"workflow_format": fmt.value}
    try:
        workflow = parse_workflow(content, fmt)
    except UnsupportedFormatError as exc:
        logger.info("Workflow format not supported: %s", exc, extra=extra)
        return None, [], str(exc)
    except WorkflowParseError as exc:
        logger.info("Workflow parse failed (%s): %s", fmt.value, exc, extra=extra)
        return None, [], str(exc)
    except Exception as exc:
        logger.exception("Unexpected error parsing %s workflow", fmt.value, extra=extra)
        return None, [], str(exc) or "Unknown parsing error"
    return workflow, validate_workflow(workflow), None


def _result(
    fmt: WorkflowFormat,
    workflow: BusinessProcess | None,
    warnings: list[str],
    error: str | None,
    started: float,
) -> NormalizationResult:
    status = "ok" if workflow is not None else "failed"
    workflow_normalizations_total.labels(format=fmt.value, status=status).inc()
    workflow_normalize_duration_seconds.labels(format=fmt.value).observe(
        time.perf_counter() - started
    )
    if workflow is None:
        return NormalizationResult(success=False, format=fmt, error=error)
    if warnings:
        logger.debug(
            "Workflow %s has %d warning(s)",
            workflow.code,
            len(warnings),
            extra={
                "workflow_format": fmt.value,
                "workflow_code": workflow.code,
                "warning_count": len(warnings),
            },
        )
    return NormalizationResult(
        success=True,
        workflow=workflow,
        format=fmt,
        warnings=warnings or None,
    )


def _resolve_format(content: str, format_hint: WorkflowFormat | str | None) -> WorkflowFormat:
    """Coerce a caller's hint to a :class:`WorkflowFormat`, or detect one.

    Raises ``ValueError`` for a hint that names no known format.
    """
    if format_hint is None or format_hint == "":
        fmt = detect_format(content)
        logger.debug("Detected workflow format %s", fmt.value, extra={"workflow_format": fmt.value})
        return fmt
    return WorkflowFormat(format_hint)


def _unsupported(format_hint: object, started: float) -> NormalizationResult:
    logger.info("Unsupported workflow format hint %r", format_hint)
    return _result(
        WorkflowFormat.NATURAL, None, [], f"Unsupported format: {format_hint}", started
    )


def normalize_workflow(
    content: str,
    format_hint: WorkflowFormat | str | None = None,
    options: LayoutOptions | None = None,
) -> NormalizationResult:
    started = time.perf_counter()
    try:
        fmt = _resolve_format(content, format_hint)
    except ValueError:
        return _unsupported(format_hint, started)
    logger.debug("Normalizing workflow as %s", fmt.value, extra={"workflow_format": fmt.value})

    workflow, warnings, error = _parse_and_validate(content, fmt)
    if workflow is not None:
        apply_layout(workflow.nodes, workflow.transitions, options)
    return _result(fmt, workflow, warnings, error, started)


async def normalize_workflow_async(
    content: str,
    format_hint: WorkflowFormat | str | None = None,
    backend: LayoutBackend | None = None,
    options: LayoutOptions | None = None,
) -> NormalizationResult:
    """Same pipeline as :func:`normalize_workflow`, awaiting a layout backend."""
    started = time.perf_counter()
    try:
        fmt = _resolve_format(content, format_hint)
    except ValueError:
        return _unsupported(format_hint, started)
    backend = backend or IntrinsicLayoutBackend()
    logger.debug(
        "Normalizing workflow as %s (layout backend: %s)",
        fmt.value,
        backend.name,
        extra={"workflow_format": fmt.value},
    )

    workflow, warnings, error = _parse_and_validate(content, fmt)
    if workflow is not None:
        workflow = await backend.layout(workflow, options)
    return _result(fmt, workflow, warnings, error, started)
