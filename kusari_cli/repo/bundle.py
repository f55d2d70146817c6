"""
Repository bundle builder.

Turns a git working tree into ``kusari-inspector.tar.bz2``:

- diff scans: ``git diff --binary <rev>`` stored as ``kusari-inspector.patch``
- full scans: monorepo check, no patch
- tracked files plus untracked files not ignored by ``.gitignore``
- ``kusari-inspector.json`` metadata

Everything is staged in a temporary working directory that is removed when
the builder is closed.
"""

import bz2
import json
import logging
import os
import shutil
import subprocess
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from kusari_cli.constants import META_FILE, PATCH_FILE, TARBALL_NAME, WORKING_DIR_NAME
from kusari_cli.core.urls import get_doc_ref
from kusari_cli.upload.exceptions import BundleError, MonorepoDetectedError
from kusari_cli.upload.models import BundleMetadata, ScanType

from .monorepo import detect_monorepo

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 60


@dataclass
class Bundle:
    """A finished, compressed bundle ready for upload"""
    path: Path
    size: int
    metadata: BundleMetadata
    doc_ref: str

    @property
    def filename(self) -> str:
        return self.path.name

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


def run_git(args: List[str], cwd: Union[str, Path], binary: bool = False):
    """Run ``git <args>`` in ``cwd`` and return stdout; raise BundleError on failure."""
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=str(cwd),
            capture_output=True,
            text=not binary,
            timeout=GIT_TIMEOUT
        )
    except FileNotFoundError as e:
        raise BundleError(f"git executable not found: {e}")
    except subprocess.TimeoutExpired:
        raise BundleError(f"git {' '.join(args)} timed out after {GIT_TIMEOUT}s")

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", "replace") if binary else result.stderr
        raise BundleError(f"git {' '.join(args)} failed: {stderr.strip()}")
    return result.stdout


class BundleBuilder:
    """Build the upload artifact for one scan of ``directory``.

    Usage::

        with BundleBuilder(repo_dir) as builder:
            bundle = builder.build(rev="HEAD~1")
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).resolve()
        self.logger = logging.getLogger(__name__)
        self._temp_dir: Optional[Path] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()

    @property
    def work_dir(self) -> Path:
        if self._temp_dir is None:
            self._temp_dir = Path(tempfile.mkdtemp(prefix="kusari-"))
            self.logger.debug("Created working directory %s", self._temp_dir)
        path = self._temp_dir / WORKING_DIR_NAME
        path.mkdir(mode=0o700, exist_ok=True)
        return path

    def cleanup(self) -> None:
        if self._temp_dir is not None:
            shutil.rmtree(self._temp_dir, ignore_errors=True)
            self.logger.debug("Removed working directory %s", self._temp_dir)
            self._temp_dir = None

    def build(self, rev: str = "HEAD", full: bool = False) -> Bundle:
        self.validate_directory()

        if full:
            is_monorepo, indicators = detect_monorepo(self.directory)
            if is_monorepo:
                raise MonorepoDetectedError(indicators)
        else:
            self.write_patch(rev)

        metadata = self.create_metadata(rev, ScanType.FULL if full else ScanType.DIFF)
        meta_path = self.work_dir / META_FILE
        meta_path.write_text(json.dumps(metadata.to_dict()))

        files = self.list_files()
        self.logger.debug("Packaging %d files from %s", len(files), self.directory)

        archive = self.package(files, meta_path, None if full else self.work_dir / PATCH_FILE)
        blob = archive.read_bytes()
        return Bundle(path=archive, size=len(blob), metadata=metadata, doc_ref=get_doc_ref(blob))

    def validate_directory(self) -> None:
        if not self.directory.is_dir():
            raise BundleError(f"not a directory: {self.directory}")
        if not (self.directory / ".git").exists():
            raise BundleError(f"{self.directory} is not a git repository root (no .git directory)")

    def validate_rev(self, rev: str) -> None:
        try:
            run_git(["rev-parse", "--verify", "--quiet", "--end-of-options", f"{rev}^{{commit}}"], self.directory)
        except BundleError:
            raise BundleError(f"not a valid git rev: {rev}")

    def write_patch(self, rev: str) -> Path:
        self.validate_rev(rev)
        diff = run_git(["diff", "--binary", rev], self.directory, binary=True)
        if not diff:
            raise BundleError(f"git diff command produced no output: git diff {rev}")
        patch_path = self.work_dir / PATCH_FILE
        patch_path.write_bytes(diff)
        return patch_path

    def create_metadata(self, rev: str, scan_type: ScanType) -> BundleMetadata:
        branch = run_git(["rev-parse", "--abbrev-ref", "HEAD"], self.directory).strip()
        if not branch:
            raise BundleError("git rev-parse command produced no output")

        try:
            remote = run_git(["remote", "get-url", "origin"], self.directory).strip()
        except BundleError as e:
            self.logger.debug("No origin remote: %s", e)
            remote = ""

        status = run_git(["status", "--porcelain"], self.directory)

        return BundleMetadata(
            patch_name=PATCH_FILE,
            current_branch=branch,
            dir_name=self.directory.name,
            diff_cmd=rev,
            remote=remote,
            git_dirty=bool(status.strip()),
            scan_type=scan_type,
        )

    def list_files(self) -> List[str]:
        """Tracked files plus untracked files that are not ignored."""
        try:
            tracked = run_git(["ls-files", "-z"], self.directory)
            untracked = run_git(["ls-files", "-z", "--others", "--exclude-standard"], self.directory)
        except BundleError as e:
            raise BundleError(f"error getting git files list: {e}")

        files = []
        seen = set()
        for name in (tracked + untracked).split("\0"):
            if not name or name in seen:
                continue
            first = name.split("/", 1)[0]
            if first in (".git", WORKING_DIR_NAME):
                continue
            seen.add(name)
            files.append(name)
        return files

    def package(self, files: List[str], meta_path: Path, patch_path: Optional[Path]) -> Path:
        tar_path = self.work_dir / TARBALL_NAME[:-len(".bz2")]
        with tarfile.open(tar_path, "w", dereference=True) as tar:
            for name in files:
                source = self.directory / name
                if not os.path.lexists(source):
                    # Tracked but deleted in the working tree
                    continue
                try:
                    tar.add(str(source), arcname=name, recursive=False)
                except OSError as e:
                    self.logger.warning("Skipping %s: %s", name, e)
            tar.add(str(meta_path), arcname=META_FILE)
            if patch_path is not None:
                tar.add(str(patch_path), arcname=PATCH_FILE)

        archive_path = self.work_dir / TARBALL_NAME
        with open(tar_path, "rb") as src, bz2.open(archive_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
        tar_path.unlink()
        return archive_path
