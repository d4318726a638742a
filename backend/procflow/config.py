from __future__ import annotations

import os

APP_VERSION = "0.4.0"


def _csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    PROJECT_NAME: str = "procflow"
    API_V1_PREFIX: str = "/api/v1"

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    ALLOWED_ORIGINS: list[str] = _csv(
        os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173")
    )

    # Uploaded workflow definitions larger than this are refused (bytes)
    MAX_WORKFLOW_BYTES: int = int(os.getenv("MAX_WORKFLOW_BYTES", str(2 * 1024 * 1024)))

    # Layout: "TB" (top-to-bottom) or "LR" (left-to-right)
    LAYOUT_DIRECTION: str = os.getenv("LAYOUT_DIRECTION", "TB").upper()

    # Optional external layout service (if empty, the built-in layering is used)
    LAYOUT_SERVICE_URL: str = os.getenv("LAYOUT_SERVICE_URL", "")
    LAYOUT_SERVICE_TIMEOUT: float = float(os.getenv("LAYOUT_SERVICE_TIMEOUT", "10"))


settings = Settings()
