"""
Pipeline configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import Optional

from pydantic import Field

from switchyard.common.core.config import BaseAppConfig


class PipelineConfig(BaseAppConfig):
    """
    Configuration management for the pipeline server.
    """

    # Server settings
    BIND_HOST: str = Field(default="127.0.0.1", description="Listen host")
    BIND_PORT: int = Field(default=8080, ge=1, le=65535, description="Listen port")

    # Collaborators
    STATIC_ROOT: str = Field(default=".", description="Root directory for static files")
    PROXY_TIMEOUT: float = Field(default=30.0, gt=0, description="Upstream timeout (seconds)")
    MAX_REQUEST_BODY_BYTES: Optional[int] = Field(
        default=10 * 1024 * 1024, ge=0, description="Request body limit (None for unlimited)"
    )
    REQUEST_ID_HEADER: str = Field(default="x-request-id", description="Response header for the request ID")

    # Example application credentials
    AUTH_USER: str = Field(default="admin", description="Basic auth username")
    AUTH_PASS: str = Field(default="admin", description="Basic auth password")

    # model_config is inherited


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = PipelineConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
