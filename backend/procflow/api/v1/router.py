from fastapi import APIRouter

from procflow.api.v1 import artifacts, workflows

api_router = APIRouter()

api_router.include_router(workflows.router)
api_router.include_router(artifacts.router)
