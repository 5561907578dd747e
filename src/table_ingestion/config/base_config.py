# ============================================================================
# src/table_ingestion/config/base_config.py
# ============================================================================
"""
Base Configuration
- Project root
- Data directory and job database
- Batch output directory
- Upload limits
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

class BaseSettingsConfig(BaseSettings):
    # Root project directory
    PROJECT_ROOT: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent.parent,
        description="Root directory of the project"
    )

    # Working data (uploads, database)
    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Directory for job data"
    )

    # Job / table persistence
    JOBS_DB_PATH: Path = Field(
        default=Path("data/jobs.db"),
        description="SQLite database holding jobs, original files and extracted tables"
    )

    # Batch runner output
    OUTPUT_DIR: Path = Field(
        default=Path("outputs"),
        description="Root directory for batch JSON snapshots and workbooks"
    )

    UPLOAD_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024,
        gt=0,
        description="Largest PDF accepted by the upload endpoint"
    )

    def create_directories(self):
        """Create all necessary directories if they don't exist"""
        dirs = [
            self.DATA_DIR,
            self.OUTPUT_DIR,
            self.JOBS_DB_PATH.parent
        ]
        for directory in dirs:
            directory.mkdir(parents=True, exist_ok=True)

# Global instance
base_settings = BaseSettingsConfig()
