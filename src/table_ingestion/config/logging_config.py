# ============================================================================
# src/table_ingestion/config/logging_config.py
# ============================================================================
"""
Logging Settings
- Log level
- Optional log file
- JSON output
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

class LoggingSettings(BaseSettings):
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FILE: Optional[Path] = Field(
        default=None,
        description="Write logs to this file in addition to stdout"
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit JSON log lines instead of plain text"
    )

logging_settings = LoggingSettings()
