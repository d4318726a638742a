from __future__ import annotations

from fastapi import APIRouter

from procflow.schemas.workflow import WorkflowContent
from procflow.services.artifacts import extract_artifacts, get_artifact_display_name

router = APIRouter(prefix="/artifacts", tags=["artifacts"])


@router.post("/extract")
async def extract(body: WorkflowContent):
    artifacts = extract_artifacts(body.content)
    return {
        "artifacts": [
            {**a.model_dump(exclude_none=True), "displayName": get_artifact_display_name(a)}
            for a in artifacts
        ]
    }
