"""
Build/run executor ("AppShell").

The watch session only depends on the AppShell protocol. CommandAppShell
is the default implementation: it drives the Go toolchain and optional
asset pipeline commands through subprocesses and keeps the application
running between rebuilds.
"""

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from build_watch.config import ProjectConfigStore
from build_watch.exceptions import BuildError
from build_watch.models import Task, TaskKind, WatchSettings


logger = logging.getLogger(__name__)

# Seconds to wait for the application to exit before killing it
APP_STOP_TIMEOUT = 5.0


class AppShell(Protocol):
    """What the watch session needs from an executor."""

    def run(self) -> None:
        """Build and start the long-lived application. Raises on failure."""
        ...

    def dispatch_tasks(self, batch: List[Task]) -> None:
        """Execute a batch of tasks in the given order."""
        ...


class CommandAppShell:
    """
    Subprocess-backed executor.

    Rebuilds the binary at most once per batch, runs module tests after a
    successful build, and restarts the application when the binary changed.
    run(), dispatch_tasks(), dist() and shutdown() are called from different
    threads and run one at a time; nothing is started after shutdown().
    """

    def __init__(
        self,
        root: Path,
        config_store: ProjectConfigStore,
        settings: WatchSettings,
        app_args: Optional[Sequence[str]] = None,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen
    ):
        """
        Initialize executor.

        Args:
            root: Project root (cwd for all commands)
            config_store: Shared project configuration
            settings: Session settings (asset commands, binary name)
            app_args: Arguments passed to the application
            run: Process runner for build commands
            popen: Process launcher for the application
        """
        self.root = Path(root).resolve()
        self.config_store = config_store
        self.settings = settings
        self.app_args = list(app_args or [])
        self._run = run
        self._popen = popen
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._shut_down = False

    @property
    def binary_path(self) -> Path:
        name = self.settings.app_binary or self.config_store.package_name() or self.root.name
        return self.root / name

    # AppShell protocol

    def run(self) -> None:
        """
        Build the binary and start the application.

        Raises:
            BuildError: If the binary cannot be built or started
        """
        with self._lock:
            if self._shut_down:
                raise BuildError("Executor has been shut down")
            if not self.build_binary():
                raise BuildError(f"Failed to build {self.binary_path.name}")
            self.start_app()

    def dispatch_tasks(self, batch: List[Task]) -> None:
        """
        Execute a batch in order.

        A failed binary build skips the remaining build and test tasks of
        the batch. Failures are logged, never raised.
        """
        with self._lock:
            if self._shut_down:
                logger.info("Executor shut down, dropped tasks: " + ", ".join(str(task) for task in batch))
                return
            self._dispatch(batch)

    def _dispatch(self, batch: List[Task]) -> None:
        logger.info("Running tasks: " + ", ".join(str(task) for task in batch))

        binary_built = False
        binary_failed = False

        for task in batch:
            if task.kind == TaskKind.BUILD_BINARY:
                if binary_built or binary_failed:
                    continue
                if self.build_binary():
                    binary_built = True
                else:
                    binary_failed = True
            elif task.kind == TaskKind.BINARY_TEST:
                if binary_failed:
                    logger.warning(f"Skipped {task}, the binary failed to build")
                    continue
                self.run_tests(task.target)
            else:
                self.build_assets(task.kind)

        if binary_built and not self.is_library():
            self.restart_app()

    def dist(self) -> None:
        """
        Build assets and a distribution binary once.

        Raises:
            BuildError: If any step fails
        """
        with self._lock:
            for kind in (TaskKind.BUILD_IMAGES, TaskKind.BUILD_STYLES, TaskKind.BUILD_JAVASCRIPTS):
                if not self.build_assets(kind):
                    raise BuildError(f"Failed to run {kind.name}")
            if not self.build_binary(distribution=True):
                raise BuildError(f"Failed to build {self.binary_path.name}")
        logger.info(f"Distribution binary ready: {self.binary_path}")

    # Steps

    def build_binary(self, distribution: bool = False) -> bool:
        """Run `go build`; returns True on success."""
        command = ["go", "build", "-o", str(self.binary_path)]
        command.extend(self.config_store.build_opts(distribution=distribution))
        logger.info(f"Building {self.binary_path.name} ...")
        return self._execute(command)

    def run_tests(self, module: str) -> bool:
        """Run `go test` for a module directory; returns True on success."""
        package = "." if module in ("", ".") else "./" + module
        logger.info(f"Testing {package} ...")
        return self._execute(["go", "test", package])

    def build_assets(self, kind: TaskKind) -> bool:
        """Run the configured asset command for a task kind, if any."""
        command = {
            TaskKind.BUILD_IMAGES: self.settings.images_command,
            TaskKind.BUILD_STYLES: self.settings.styles_command,
            TaskKind.BUILD_JAVASCRIPTS: self.settings.javascripts_command,
        }.get(kind)

        if not command:
            logger.debug(f"No command configured for {kind.name}, skipped")
            return True

        logger.info(f"Running {kind.name}: {command}")
        return self._execute(command, shell=True)

    def is_library(self) -> bool:
        with self.config_store.read() as config:
            return bool(config.package and config.package.is_golang_lib)

    # Application process

    def start_app(self) -> None:
        """
        Start the application binary.

        Raises:
            BuildError: If the process cannot be launched
        """
        if self._shut_down:
            logger.warning(f"Executor shut down, not starting {self.binary_path.name}")
            return

        if self.is_library():
            logger.info("Project is a Go library, nothing to run")
            return

        command = [str(self.binary_path)] + self.app_args
        try:
            self._process = self._popen(command, cwd=str(self.root))
        except OSError as e:
            raise BuildError(f"Failed to start {self.binary_path.name}: {e}") from e
        logger.info(f"Started {self.binary_path.name} (pid {self._process.pid})")

    def stop_app(self) -> None:
        """Terminate the running application, killing it after a timeout."""
        process, self._process = self._process, None
        if process is None or process.poll() is not None:
            return

        process.terminate()
        try:
            process.wait(timeout=APP_STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning(f"{self.binary_path.name} did not exit, killing it")
            process.kill()
            process.wait()

    def restart_app(self) -> None:
        self.stop_app()
        try:
            self.start_app()
        except BuildError as e:
            logger.error(f"{e}")

    def shutdown(self) -> None:
        """
        Stop the application (called on session exit).

        Waits for a running build or batch to finish; afterwards no
        application is started again.
        """
        with self._lock:
            self._shut_down = True
            self.stop_app()

    def is_app_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def _execute(self, command, shell: bool = False) -> bool:
        try:
            result = self._run(command, cwd=str(self.root), shell=shell, check=False)
        except OSError as e:
            logger.error(f"Failed to run {command}: {e}")
            return False

        if result.returncode != 0:
            logger.error(f"Command failed with exit status {result.returncode}: {command}")
            return False
        return True


def create_executor(
    root: Path,
    config_store: ProjectConfigStore,
    settings: WatchSettings,
    app_args: Optional[Sequence[str]] = None
) -> CommandAppShell:
    """
    Create the default executor for a project.

    Args:
        root: Project root
        config_store: Shared project configuration
        settings: Session settings
        app_args: Arguments passed to the application

    Returns:
        Configured CommandAppShell
    """
    return CommandAppShell(
        root=Path(root) if root else Path(os.getcwd()),
        config_store=config_store,
        settings=settings,
        app_args=app_args
    )
