"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (TARP__SECTION__KEY)
3. Project YAML (.tarp.yaml in the working directory)
4. Global YAML (~/.config/tarp/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    TARP__<SECTION>__<KEY>=<VALUE>

Examples:
    TARP__LOGGING__LEVEL=DEBUG
    TARP__REPORT__OUTPUT=build/coverage.html
    TARP__RESOLVE__STRATEGY=module
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ResolveStrategy = Literal["auto", "go-list", "module"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        TARP__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. INFO reports each phase, DEBUG every merged profile.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ReportConfig(BaseModel):
    """Report output configuration.

    Env vars:
        TARP__REPORT__OUTPUT: Path of the generated HTML document
        TARP__REPORT__TITLE: Document title
        TARP__REPORT__TAB_WIDTH: Spaces per tab in annotated source (0 keeps tabs)
    """

    output: str = Field(
        default="./coverage.html",
        description="The generated coverage report.",
    )
    title: str = Field(
        default="Coverage report",
        description="Title shown in the browser tab and page header.",
    )
    tab_width: int = Field(
        default=8,
        description="Tab expansion width for source listings. 0 keeps literal tabs.",
    )

    @field_validator("tab_width")
    @classmethod
    def validate_tab_width(cls, v: int) -> int:
        if not (0 <= v <= 16):
            raise ValueError(f"tab_width must be 0-16, got {v}")
        return v


class ResolveConfig(BaseModel):
    """Package and source file resolution.

    Env vars:
        TARP__RESOLVE__STRATEGY: auto, go-list or module
        TARP__RESOLVE__GO_BINARY: go executable used by the go-list strategy
        TARP__RESOLVE__MODULE_ROOT: directory holding go.mod for the module strategy
    """

    strategy: ResolveStrategy = Field(
        default="auto",
        description="auto uses 'go list' when a go toolchain is on PATH, "
        "otherwise resolves against go.mod in module_root.",
    )
    go_binary: str = Field(
        default="go",
        description="Go executable for the go-list strategy.",
    )
    module_root: str | None = Field(
        default=None,
        description="Module root for the module strategy. Default: working directory.",
    )


class TarpConfig(BaseModel):
    """Root configuration for tarp.

    All settings can be configured via:
    1. Environment variables: TARP__SECTION__KEY
    2. YAML config files (project or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    resolve: ResolveConfig = Field(default_factory=ResolveConfig)
