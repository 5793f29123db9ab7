"""Test fixtures for build-watch tests."""

import pytest
import tempfile
import shutil
from pathlib import Path
from unittest.mock import MagicMock

from build_watch.config import ProjectConfigStore
from build_watch.models import WatchSettings
from build_watch.path_filter import PathFilter


PROJECT_TOML = """\
[package]
name = "webapp"
version = "0.1.0"
authors = ["Dev <dev@example.com>"]
dependencies = ["github.com/example/router"]
build_opts = ["-v"]

[assets]
dependencies = ["jquery"]

[distribution]
pack_extras = ["templates"]
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def project_root(temp_dir):
    """
    Create a small Go + assets project.

    webapp/
        project.toml
        main.go
        foo/bar.go, foo/bar_test.go
        lib/util.go
        assets/stylesheets/app.styl
        .git/, node_modules/jquery/, public/
    """
    (temp_dir / "project.toml").write_text(PROJECT_TOML)
    (temp_dir / "main.go").write_text("package main\n")

    (temp_dir / "foo").mkdir()
    (temp_dir / "foo" / "bar.go").write_text("package foo\n")
    (temp_dir / "foo" / "bar_test.go").write_text("package foo\n")

    (temp_dir / "lib").mkdir()
    (temp_dir / "lib" / "util.go").write_text("package lib\n")

    (temp_dir / "assets" / "stylesheets").mkdir(parents=True)
    (temp_dir / "assets" / "stylesheets" / "app.styl").write_text("body\n  margin 0\n")

    (temp_dir / ".git" / "objects").mkdir(parents=True)
    (temp_dir / "node_modules" / "jquery").mkdir(parents=True)
    (temp_dir / "public").mkdir()

    return temp_dir


@pytest.fixture
def config_store(project_root):
    """Load the project configuration."""
    return ProjectConfigStore(project_root / "project.toml")


@pytest.fixture
def settings():
    """Session settings with a short tick for tests."""
    return WatchSettings(tick_interval_ms=20)


@pytest.fixture
def path_filter(project_root, settings):
    """Path filter rooted at the test project."""
    return PathFilter(settings.ignore_dirs, root=str(project_root))


@pytest.fixture
def mock_observer():
    """A watchdog observer stand-in that records schedule/unschedule calls."""
    observer = MagicMock()
    observer.schedule.side_effect = lambda handler, path, recursive=False: ("watch", path)
    observer.is_alive.return_value = True
    return observer
