"""Configuration management for architech."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .constants import BUILTIN_GENOMES_DIR
from .registry import BUILTIN_ADAPTERS_DIR


class ArchitechConfig(BaseSettings):
    """Configuration settings for architech."""

    # Catalogues
    adapters_dir: Optional[Path] = Field(default=None, description="Adapter YAML directory")
    genomes_dir: Optional[Path] = Field(default=None, description="Genome recipe directory")

    # Execution
    command_timeout: Optional[float] = Field(default=None, gt=0)
    default_structure: str = Field(default="single-app", pattern="^(single-app|monorepo)$")
    skip_install: bool = False

    verbose: bool = False

    class Config:
        env_prefix = "ARCHITECH_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_env(cls) -> "ArchitechConfig":
        """Create config from environment variables."""
        return cls()

    def get_adapters_dir(self) -> Path:
        return self.adapters_dir or BUILTIN_ADAPTERS_DIR

    def get_genomes_dir(self) -> Path:
        return self.genomes_dir or BUILTIN_GENOMES_DIR
