"""
build-watch - Development build orchestrator for Go + assets projects.

Watches a project tree, coalesces filesystem events into a deduplicated,
priority-ordered batch of rebuild tasks, and hands each batch to an
executor on a fixed debounce tick.

Architecture:
- DirectoryWatcher   - one watchdog watch per non-ignored directory
- EventClassifier    - raw event -> register/deregister/enqueue/reload
- TaskQueue          - pending tasks, deduplicated, in priority order
- ConfigReloader     - hot reload of project.toml
- WatchSession       - the run loop and debounce tick
"""

__version__ = "0.3.0"

from build_watch.models import (
    TaskKind,
    Task,
    ProjectConfig,
    WatchSettings,
)

from build_watch.config import ProjectConfigStore, load_project_config, DEFAULT_CONFIG_FILE
from build_watch.tasks import TaskQueue
from build_watch.path_filter import PathFilter
from build_watch.watcher import DirectoryWatcher
from build_watch.classifier import EventClassifier, ClassifiedAction, ActionType
from build_watch.deps import DependencyResolver
from build_watch.reloader import ConfigReloader
from build_watch.executor import AppShell, CommandAppShell, create_executor
from build_watch.session import WatchSession

__all__ = [
    # Models
    "TaskKind",
    "Task",
    "ProjectConfig",
    "WatchSettings",
    # Config
    "ProjectConfigStore",
    "load_project_config",
    "DEFAULT_CONFIG_FILE",
    # Components
    "TaskQueue",
    "PathFilter",
    "DirectoryWatcher",
    "EventClassifier",
    "ClassifiedAction",
    "ActionType",
    "DependencyResolver",
    "ConfigReloader",
    "AppShell",
    "CommandAppShell",
    "create_executor",
    "WatchSession",
]
