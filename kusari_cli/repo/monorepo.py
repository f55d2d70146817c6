"""
Monorepo heuristic for full repository scans.

A full risk check is meant for a single project. Repositories that carry a
workspace-manager config at the root, or several project manifests below
the root, are reported so the user can scan each sub-project on its own.
"""

import fnmatch
import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Tuple, Union

logger = logging.getLogger(__name__)

ROOT_CONFIG_FILES = [
    "lerna.json",
    "nx.json",
    "pnpm-workspace.yaml",
    "turbo.json",
    "rush.json",
    "go.work",
]

# manifest pattern -> ecosystem
MANIFEST_ECOSYSTEMS = {
    "go.mod": "go",
    "package.json": "nodejs",
    "pom.xml": "maven",
    "build.gradle": "gradle",
    "Cargo.toml": "rust",
    "pyproject.toml": "python",
    "Gemfile": "ruby",
    "composer.json": "php",
    "*.csproj": "dotnet",
}

EXCLUDED_DIR_NAMES = {
    "node_modules",
    "vendor",
    ".git",
    "dist",
    "build",
    "target",
    "venv",
    ".venv",
    "__pycache__",
    "docs",
    "doc",
    "examples",
    "example",
    "samples",
    "fixtures",
    "testdata",
    "third_party",
}

EXCLUDED_DIR_SUBSTRINGS = ("test", "fixture", "generated", "example", "sample")


def is_excluded_dir(name: str, parent: str = "") -> bool:
    """Directories that never hold a first-class project."""
    lowered = name.lower()
    if lowered in EXCLUDED_DIR_NAMES:
        return True
    if any(part in lowered for part in EXCLUDED_DIR_SUBSTRINGS):
        return True
    # api/npm is where generated API clients usually live
    return lowered == "npm" and parent.lower() == "api"


def _manifest_pattern(filename: str) -> str:
    for pattern in MANIFEST_ECOSYSTEMS:
        if fnmatch.fnmatch(filename, pattern):
            return pattern
    return ""


def _root_indicators(root: Path) -> List[str]:
    indicators = []
    for name in ROOT_CONFIG_FILES:
        if (root / name).is_file():
            indicators.append(f"monorepo config: {name}")

    package_json = root / "package.json"
    if package_json.is_file():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("Could not parse %s: %s", package_json, e)
        else:
            if isinstance(data, dict) and data.get("workspaces"):
                indicators.append("package.json with workspaces")

    cargo = root / "Cargo.toml"
    if cargo.is_file():
        try:
            if "[workspace]" in cargo.read_text(encoding="utf-8"):
                indicators.append("Cargo.toml with [workspace]")
        except OSError as e:
            logger.debug("Could not read %s: %s", cargo, e)

    return indicators


def _subdirectory_manifests(root: Path) -> Dict[str, List[str]]:
    """Manifest paths below the root, grouped by manifest pattern."""
    found: Dict[str, List[str]] = {}
    for current, dirs, files in os.walk(root):
        parent = os.path.basename(current)
        dirs[:] = sorted(d for d in dirs if not is_excluded_dir(d, parent))
        if Path(current) == root:
            continue
        for filename in files:
            pattern = _manifest_pattern(filename)
            if pattern:
                found.setdefault(pattern, []).append(os.path.relpath(os.path.join(current, filename), root))
    return found


def detect_monorepo(directory: Union[str, Path]) -> Tuple[bool, List[str]]:
    """Return ``(is_monorepo, indicators)`` for the repository at ``directory``."""
    root = Path(directory)
    indicators = _root_indicators(root)

    manifests = _subdirectory_manifests(root)
    for pattern, paths in manifests.items():
        if len(paths) >= 2:
            indicators.append(f"multiple {pattern} files in subdirectories")
            logger.debug("Found %s in: %s", pattern, ", ".join(paths))

    ecosystems = {MANIFEST_ECOSYSTEMS[pattern] for pattern in manifests}
    if len(ecosystems) >= 2:
        indicators.append(f"multiple project types detected ({', '.join(sorted(ecosystems))})")

    return bool(indicators), indicators
