from pathlib import Path
from typing import List, Set
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    # File Scanning Configuration
    supported_extensions: str = Field(default=".ts,.tsx,.js,.jsx,.mjs,.cjs,.sql", env="SUPPORTED_EXTENSIONS")
    ignored_dirs: str = Field(
        default=".git,node_modules,dist,build,coverage,.next,.nuxt,out,.cache,.turbo,.idea,.vscode,vendor,__pycache__",
        env="IGNORED_DIRS"
    )
    exclude_test_files: bool = Field(default=True, env="EXCLUDE_TEST_FILES")
    max_file_size_mb: int = Field(default=10, env="MAX_FILE_SIZE_MB")
    max_files: int = Field(default=50000, env="MAX_FILES")
    max_workers: int = Field(default=4, env="MAX_WORKERS")

    # Parsing Configuration
    strict_parsing: bool = Field(default=False, env="STRICT_PARSING")

    # Graph Configuration
    interactive_widgets: str = Field(
        default="Button,IconButton,Input,TextField,TextArea,Textarea,Select,Checkbox,Radio,Switch,Slider,Form,Link",
        env="INTERACTIVE_WIDGETS"
    )

    # Usage Tracking Configuration
    large_codebase_threshold: int = Field(default=100000, env="LARGE_CODEBASE_THRESHOLD")
    dead_code_warning_percentage: float = Field(default=30.0, env="DEAD_CODE_WARNING_PERCENTAGE")

    # Output Configuration
    output_dir: str = Field(default="graph-data-files", env="OUTPUT_DIR")

    # Logging Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_file: str = Field(default="logs/code2graph.log", env="LOG_FILE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def supported_extensions_list(self) -> List[str]:
        """Get supported extensions as a list."""
        return [ext.strip() for ext in self.supported_extensions.split(",") if ext.strip()]

    @property
    def ignored_dirs_set(self) -> Set[str]:
        """Get ignored directory names as a set."""
        return {name.strip() for name in self.ignored_dirs.split(",") if name.strip()}

    @property
    def interactive_widgets_set(self) -> Set[str]:
        """Get interactive widget component names as a set."""
        return {name.strip() for name in self.interactive_widgets.split(",") if name.strip()}

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        return Path(self.log_file).parent

    def ensure_directories(self):
        """Ensure necessary directories exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()
