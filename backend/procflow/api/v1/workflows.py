from __future__ import annotations

import logging

from fastapi import APIRouter, Form, HTTPException, UploadFile

from procflow.config import settings
from procflow.schemas.workflow import (
    LayoutDirection,
    LayoutRequest,
    MutateRequest,
    NormalizationResult,
    NormalizeRequest,
    WorkflowBody,
    WorkflowContent,
    WorkflowFormat,
)
from procflow.services.format_detector import detect_format
from procflow.services.workflow_errors import MutationError
from procflow.services.workflow_layout import (
    LayoutOptions,
    get_layout_backend,
    layout_workflow,
)
from procflow.services.workflow_mutations import apply_mutations, workflow_to_context
from procflow.services.workflow_normalizer import normalize_workflow_async
from procflow.services.workflow_validator import validate_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])


def _envelope(result: NormalizationResult) -> dict:
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


async def _normalize(
    content: str,
    fmt: WorkflowFormat | None,
    direction: LayoutDirection | None,
) -> dict:
    result = await normalize_workflow_async(
        content,
        format_hint=fmt,
        backend=get_layout_backend(),
        options=LayoutOptions.default(direction),
    )
    return _envelope(result)


@router.post("/detect")
async def detect(body: WorkflowContent):
    return {"format": detect_format(body.content).value}


@router.post("/normalize")
async def normalize(body: NormalizeRequest):
    return await _normalize(body.content, body.format, body.direction)


@router.post("/upload")
async def upload(
    file: UploadFile,
    format: WorkflowFormat | None = Form(None),
    direction: LayoutDirection | None = Form(None),
):
    raw = await file.read(settings.MAX_WORKFLOW_BYTES + 1)
    if len(raw) > settings.MAX_WORKFLOW_BYTES:
        raise HTTPException(413, f"Workflow file exceeds {settings.MAX_WORKFLOW_BYTES} bytes")
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(400, "Workflow file must be UTF-8 text")
    logger.info("Importing uploaded workflow %s (%d bytes)", file.filename, len(raw))
    return await _normalize(content, format, direction)


@router.post("/validate")
async def validate(body: WorkflowBody):
    warnings = validate_workflow(body.workflow)
    return {"valid": not warnings, "warnings": warnings}


@router.post("/layout")
async def layout(body: LayoutRequest):
    options = LayoutOptions.default(body.direction)
    if body.force:
        return layout_workflow(body.workflow, options, force=True).export()
    backend = get_layout_backend()
    return (await backend.layout(body.workflow, options)).export()


@router.post("/mutate")
async def mutate(body: MutateRequest):
    try:
        updated = apply_mutations(
            body.workflow,
            body.mutations,
            relayout=body.relayout,
            options=LayoutOptions.default(),
        )
    except MutationError as exc:
        raise HTTPException(422, str(exc))
    return updated.export()


@router.post("/context")
async def context(body: WorkflowBody):
    return {"context": workflow_to_context(body.workflow)}
