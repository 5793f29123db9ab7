"""
Dependency resolution for Go packages and npm modules.

Every dependency is probed with a read-only command first and installed
only when the probe fails. Install output is streamed to the operator.
"""

import logging
import subprocess
from typing import Callable, List, Optional, Sequence

from build_watch.config import ProjectConfigStore
from build_watch.exceptions import DependencyError


logger = logging.getLogger(__name__)

# Toolchain packages the asset pipeline needs when any asset dependency is declared
ASSET_TOOLCHAIN = ["browserify", "coffeeify", "envify", "uglifyify", "6to5ify", "nib", "stylus"]


class Ecosystem:
    """A package ecosystem: how to list, probe and install dependencies."""

    name = ""

    def dependencies(self, config_store: ProjectConfigStore) -> List[str]:
        raise NotImplementedError

    def probe_command(self, dependency: str) -> List[str]:
        raise NotImplementedError

    def install_command(self, dependency: str) -> List[str]:
        raise NotImplementedError


class GolangEcosystem(Ecosystem):
    """Go packages declared under [package] dependencies."""

    name = "Go"

    def dependencies(self, config_store: ProjectConfigStore) -> List[str]:
        return config_store.golang_dependencies()

    def probe_command(self, dependency: str) -> List[str]:
        return ["go", "list", dependency]

    def install_command(self, dependency: str) -> List[str]:
        return ["go", "get", dependency]


class NpmEcosystem(Ecosystem):
    """npm modules declared under [assets] dependencies, plus the asset toolchain."""

    name = "npm"

    def dependencies(self, config_store: ProjectConfigStore) -> List[str]:
        deps = config_store.asset_dependencies()
        if not deps:
            return []
        return deps + [dep for dep in ASSET_TOOLCHAIN if dep not in deps]

    def probe_command(self, dependency: str) -> List[str]:
        return ["npm", "list", "--depth", "0", dependency]

    def install_command(self, dependency: str) -> List[str]:
        return ["npm", "install", dependency]


class DependencyResolver:
    """
    Ensures declared dependencies are installed.

    The dependency list is snapshotted under the configuration's shared
    lock; no lock is held while external commands run.
    """

    def __init__(
        self,
        config_store: ProjectConfigStore,
        cwd: Optional[str] = None,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run
    ):
        """
        Initialize dependency resolver.

        Args:
            config_store: Shared project configuration
            cwd: Directory commands run in (project root)
            run: Process runner, subprocess.run by default
        """
        self.config_store = config_store
        self.cwd = cwd
        self._run = run
        self.golang = GolangEcosystem()
        self.npm = NpmEcosystem()

    def ensure_golang(self) -> List[str]:
        """Ensure Go dependencies are installed."""
        return self.ensure(self.golang)

    def ensure_assets(self) -> List[str]:
        """Ensure npm dependencies are installed."""
        return self.ensure(self.npm)

    def ensure_all(self) -> None:
        """Ensure Go, then npm, dependencies are installed."""
        self.ensure_golang()
        self.ensure_assets()

    def ensure(self, ecosystem: Ecosystem) -> List[str]:
        """
        Ensure every dependency of an ecosystem is installed.

        Args:
            ecosystem: Ecosystem to resolve

        Returns:
            The dependencies that were checked (empty if none declared)

        Raises:
            DependencyError: On the first dependency that fails to install
        """
        deps = ecosystem.dependencies(self.config_store)
        if not deps:
            return []

        logger.info(f"Checking {ecosystem.name} dependencies...")
        for dep in deps:
            if self.is_installed(ecosystem, dep):
                logger.info(f"Checked {ecosystem.name} dependency: {dep}")
                continue

            logger.info(f"Installing {ecosystem.name} dependency: {dep}")
            self.install(ecosystem, dep)

        logger.info(f"Loaded {ecosystem.name} dependencies: \n\t" + "\n\t".join(deps))
        return deps

    def is_installed(self, ecosystem: Ecosystem, dependency: str) -> bool:
        """Run the read-only probe; a zero exit status means installed."""
        try:
            result = self._run(
                ecosystem.probe_command(dependency),
                cwd=self.cwd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False
            )
        except OSError as e:
            logger.debug(f"Probe for {dependency} could not run: {e}")
            return False
        return result.returncode == 0

    def install(self, ecosystem: Ecosystem, dependency: str) -> None:
        """
        Install one dependency, streaming its output.

        Raises:
            DependencyError: If the installer is missing or exits non-zero
        """
        command = ecosystem.install_command(dependency)
        try:
            self._run(command, cwd=self.cwd, check=True)
        except subprocess.CalledProcessError as e:
            logger.error(f"Error when run {_format(command)}, exit status {e.returncode}")
            raise DependencyError(ecosystem.name, dependency, f"exit status {e.returncode}") from e
        except OSError as e:
            logger.error(f"Error when run {_format(command)}, {e}")
            raise DependencyError(ecosystem.name, dependency, str(e)) from e


def _format(command: Sequence[str]) -> str:
    return " ".join(command)
