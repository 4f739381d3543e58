"""HTTP server configuration model."""

from typing import Literal

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Configuration for the uvicorn server started by ``printpay serve``."""

    host: str = "127.0.0.1"
    port: int = Field(8000, gt=0, lt=65536)
    log_level: Literal["critical", "error", "warning", "info", "debug"] = "info"
