"""
Data models for build-watch.

Defines the rebuild task types, the project configuration read from
project.toml, and the settings of a watch session.
"""

from enum import IntEnum
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator


class TaskKind(IntEnum):
    """
    Category of rebuild work.

    The numeric order is the execution priority: asset pipelines finish
    before the binary is rebuilt, tests run after the binary.
    """
    BUILD_IMAGES = 0
    BUILD_STYLES = 1
    BUILD_JAVASCRIPTS = 2
    BUILD_BINARY = 3
    BINARY_TEST = 4


# Kinds enqueued for a project-wide rebuild, in priority order
FULL_REBUILD_KINDS = (
    TaskKind.BUILD_IMAGES,
    TaskKind.BUILD_STYLES,
    TaskKind.BUILD_JAVASCRIPTS,
    TaskKind.BUILD_BINARY,
)


class Task(BaseModel):
    """
    A unit of rebuild work.

    Tasks are value-equal by (kind, target). An empty target means the
    task applies to the whole project.
    """

    model_config = ConfigDict(frozen=True)

    kind: TaskKind
    target: str = Field(default="", description="Module directory, or empty for project-wide")

    def __str__(self) -> str:
        if self.target:
            return f"{self.kind.name}({self.target})"
        return self.kind.name


class PackageSection(BaseModel):
    """The [package] section: Go package metadata and dependencies."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    version: str = "0.0.1"
    authors: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list, description="Go import paths to `go get`")
    omit_tests: List[str] = Field(default_factory=list, description="Test file paths excluded from test runs")
    build_opts: List[str] = Field(default_factory=list, description="Extra flags passed to `go build`")
    is_golang_lib: bool = False


class AssetEntry(BaseModel):
    """A single front-end bundle declared under [[assets.entries]]."""

    model_config = ConfigDict(extra="ignore")

    name: str
    type: str = Field(default="javascripts", description="javascripts or stylesheets")
    requires: List[str] = Field(default_factory=list)


class AssetsSection(BaseModel):
    """The [assets] section: front-end pipeline settings."""

    model_config = ConfigDict(extra="ignore")

    dependencies: List[str] = Field(default_factory=list, description="npm packages")
    image_exts: List[str] = Field(default_factory=lambda: [".png", ".jpg", ".gif"])
    entries: List[AssetEntry] = Field(default_factory=list)


class DistributionSection(BaseModel):
    """The [distribution] section: packaging options."""

    model_config = ConfigDict(extra="ignore")

    pack_extras: List[str] = Field(default_factory=list)
    build_opts: List[str] = Field(default_factory=list)


class ProjectConfig(BaseModel):
    """
    Complete project configuration.

    Any section may be absent; a missing [package] or [assets] section
    disables that half of dependency resolution.
    """

    model_config = ConfigDict(extra="ignore")

    package: Optional[PackageSection] = None
    assets: Optional[AssetsSection] = None
    distribution: Optional[DistributionSection] = None

    def golang_dependencies(self) -> List[str]:
        """Get declared Go dependencies (empty if no [package] section)."""
        return list(self.package.dependencies) if self.package else []

    def asset_dependencies(self) -> List[str]:
        """Get declared npm dependencies (empty if no [assets] section)."""
        return list(self.assets.dependencies) if self.assets else []

    def omitted_tests(self) -> List[str]:
        """Get test paths excluded from test runs."""
        return list(self.package.omit_tests) if self.package else []


class WatchSettings(BaseModel):
    """Settings for a watch session."""

    # Debounce
    tick_interval_ms: int = Field(default=800, ge=10, description="Fixed flush period in milliseconds")

    # Observation
    ignore_dirs: List[str] = Field(
        default_factory=lambda: [".git", "node_modules", "public"],
        description="Path prefixes excluded from watching"
    )
    config_file: str = Field(default="project.toml", description="Configuration file, relative to the root")

    # Go sources
    source_suffix: str = Field(default=".go", description="Suffix of compiled source files")
    test_suffix: str = Field(default="_test.go", description="Suffix of test files")

    # Asset pipeline commands (shell command lines, optional)
    images_command: Optional[str] = None
    styles_command: Optional[str] = None
    javascripts_command: Optional[str] = None

    # Application binary (defaults to the package name)
    app_binary: Optional[str] = None

    @field_validator("ignore_dirs", mode="before")
    @classmethod
    def parse_ignore_dirs(cls, v):
        """Parse ignore prefixes from a comma-separated string or list."""
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @property
    def tick_interval(self) -> float:
        """Tick interval in seconds."""
        return self.tick_interval_ms / 1000.0
