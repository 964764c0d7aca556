from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Snapshot Configuration
    graph_snapshot_path: str = Field(default="graph_data.json")

    # Scanner Configuration
    supported_extensions: str = Field(default=".js,.ts,.jsx,.tsx,.mjs,.cjs,.py")
    max_file_size_mb: int = Field(default=10)
    max_scan_files: int = Field(default=5000)
    scan_workers: int = Field(default=4)

    # Query Configuration
    default_query_limit: int = Field(default=20)
    default_dependency_depth: int = Field(default=2)
    similarity_threshold: float = Field(default=0.3)
    # Upper bound on nodes visited by a single traversal
    max_visit_nodes: int = Field(default=10000)

    # Pattern Detection Configuration
    # Distinct dependent files needed to flag a package as heavily used
    heavy_usage_threshold: int = Field(default=3)

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/app.log")

    @property
    def supported_extensions_list(self) -> List[str]:
        """Get supported extensions as a list."""
        return [ext.strip() for ext in self.supported_extensions.split(",") if ext.strip()]

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        return Path(self.log_file).parent

    def ensure_directories(self):
        """Ensure necessary directories exist."""
        if self.log_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()
