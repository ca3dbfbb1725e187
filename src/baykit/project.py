"""Project discovery and package-manager helpers for the init command."""

from __future__ import annotations

import json
import shlex
import subprocess
from enum import Enum
from pathlib import Path
from typing import Protocol

from .exceptions import InstallError
from .logging_config import logger

PROJECT_MARKERS = ("svelte.config.js", "svelte.config.ts")
LAYOUT_CANDIDATES = (
    Path("src") / "routes" / "+layout.svelte",
    Path("src") / "+layout.svelte",
    Path("routes") / "+layout.svelte",
)
VITE_CONFIG_CANDIDATES = ("vite.config.ts", "vite.config.js")


class PackageManager(str, Enum):
    """Supported JavaScript package managers."""

    NPM = "npm"
    BUN = "bun"
    PNPM = "pnpm"
    YARN = "yarn"


# Checked in order; the first lock file found wins.
LOCK_FILES: tuple[tuple[str, PackageManager], ...] = (
    ("bun.lockb", PackageManager.BUN),
    ("bun.lock", PackageManager.BUN),
    ("pnpm-lock.yaml", PackageManager.PNPM),
    ("yarn.lock", PackageManager.YARN),
    ("package-lock.json", PackageManager.NPM),
)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` to the directory holding a svelte.config file.

    Returns:
        Project root, or None when no parent directory has a marker
    """
    current = Path(start or Path.cwd()).resolve()

    while True:
        if any((current / marker).exists() for marker in PROJECT_MARKERS):
            return current
        if current == current.parent:
            return None
        current = current.parent


def find_root_layout(project_root: Path) -> Path | None:
    """Return the first existing root layout file, if any."""
    for candidate in LAYOUT_CANDIDATES:
        path = project_root / candidate
        if path.exists():
            return path
    return None


def default_layout_path(project_root: Path) -> Path:
    return project_root / LAYOUT_CANDIDATES[0]


def find_vite_config(project_root: Path) -> Path | None:
    for name in VITE_CONFIG_CANDIDATES:
        path = project_root / name
        if path.exists():
            return path
    return None


def detect_package_manager(project_root: Path) -> PackageManager | None:
    """Guess the package manager from lock files; None when there is none."""
    for lock_file, manager in LOCK_FILES:
        if (project_root / lock_file).exists():
            return manager
    return None


def is_package_installed(project_root: Path, package: str) -> bool:
    """Check whether package.json declares ``package`` as a dependency.

    A missing or unreadable manifest counts as not installed.
    """
    manifest_path = project_root / "package.json"
    if not manifest_path.exists():
        return False

    try:
        with manifest_path.open(encoding="utf-8") as f:
            manifest = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.debug(f"Could not read {manifest_path}: {e}")
        return False

    if not isinstance(manifest, dict):
        return False
    dependencies = manifest.get("dependencies") or {}
    dev_dependencies = manifest.get("devDependencies") or {}
    return package in dependencies or package in dev_dependencies


def install_command(manager: PackageManager, package: str) -> list[str]:
    """Return the argv that adds ``package`` with ``manager``."""
    verb = "install" if manager is PackageManager.NPM else "add"
    return [manager.value, verb, package]


class CommandRunner(Protocol):
    """Runs an external command in a working directory."""

    def run(self, argv: list[str], cwd: Path) -> None: ...


class SubprocessRunner:
    """Runs commands with inherited stdio, raising on failure."""

    def run(self, argv: list[str], cwd: Path) -> None:
        command = shlex.join(argv)
        logger.info(f"Running {command} in {cwd}")
        try:
            completed = subprocess.run(argv, cwd=cwd, check=False)
        except OSError as e:
            msg = f"Could not run {command}: {e}"
            raise InstallError(msg, details={"command": command}) from e

        if completed.returncode != 0:
            msg = f"{command} exited with code {completed.returncode}"
            raise InstallError(
                msg,
                details={"command": command, "returncode": completed.returncode},
            )
