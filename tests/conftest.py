"""
Shared pytest fixtures for module registry tests

Builds real git repositories with dulwich so catalog, archive and protocol
tests run against the same object store code the server uses.
"""

import stat
import sys
from pathlib import Path
from typing import Dict, Union, Tuple
from unittest.mock import Mock

import pytest
from dulwich.objects import Blob, Commit, Tag, Tree
from dulwich.repo import Repo

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# ============================================================================
# Repository Builder
# ============================================================================

REGULAR = 0o100644
EXECUTABLE = 0o100755
SYMLINK = 0o120000
GITLINK = 0o160000

FileSpec = Union[bytes, Tuple[int, bytes]]


class RepoBuilder:
    """
    Writes commits, trees and tags straight into a bare repository.

    Files are given as a flat mapping of slash-separated paths to either
    content bytes (a regular file) or a (mode, data) pair. For symlinks the
    data is the link target; for gitlinks it is the hex id of the
    submodule commit.

    Usage:
        builder = RepoBuilder(tmp_path / "widget.git")
        commit = builder.commit({"main.tf": b"...", "bin/run.sh": (EXECUTABLE, b"#!/bin/sh")})
        builder.tag("v1.0.0", commit)
    """

    def __init__(self, path: Path):
        self.path = path
        self.repo = Repo.init_bare(str(path), mkdir=True)

    def commit(self, files: Dict[str, FileSpec], commit_time: int = 1_500_000_000, message: str = "commit") -> bytes:
        nested: dict = {}
        for file_path, spec in files.items():
            mode, data = spec if isinstance(spec, tuple) else (REGULAR, spec)
            if mode == GITLINK:
                sha = data
            else:
                blob = Blob.from_string(data)
                self.repo.object_store.add_object(blob)
                sha = blob.id
            parts = file_path.split("/")
            node = nested
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = (mode, sha)

        commit = Commit()
        commit.tree = self._write_tree(nested)
        commit.author = commit.committer = b"Test Author <test@example.com>"
        commit.author_time = commit.commit_time = commit_time
        commit.author_timezone = commit.commit_timezone = 0
        commit.message = message.encode("utf-8")
        self.repo.object_store.add_object(commit)
        return commit.id

    def tag(self, name: str, commit_id: bytes, annotated: bool = False) -> None:
        target = commit_id
        if annotated:
            tag = Tag()
            tag.object = (Commit, commit_id)
            tag.name = name.encode("utf-8")
            tag.tagger = b"Test Author <test@example.com>"
            tag.tag_time = 1_600_000_000
            tag.tag_timezone = 0
            tag.message = b"release\n"
            self.repo.object_store.add_object(tag)
            target = tag.id
        self.repo.refs[f"refs/tags/{name}".encode("utf-8")] = target

    def branch(self, name: str, commit_id: bytes) -> None:
        self.repo.refs[f"refs/heads/{name}".encode("utf-8")] = commit_id

    def tree_id(self, commit_id: bytes) -> str:
        return self.repo[commit_id].tree.decode("ascii")

    def _write_tree(self, entries: dict) -> bytes:
        tree = Tree()
        for name, value in entries.items():
            if isinstance(value, dict):
                tree.add(name.encode("utf-8"), stat.S_IFDIR, self._write_tree(value))
            else:
                mode, sha = value
                tree.add(name.encode("utf-8"), mode, sha)
        self.repo.object_store.add_object(tree)
        return tree.id


# ============================================================================
# Base Fixtures
# ============================================================================

@pytest.fixture
def logger():
    """
    Standard mock logger for all tests.
    """
    from module_registry.utils.logger import Logger
    return Mock(spec=Logger)


@pytest.fixture
def make_repo(tmp_path):
    """Factory for bare repositories under tmp_path."""
    builders = []

    def _make(name: str = "module.git") -> RepoBuilder:
        builder = RepoBuilder(tmp_path / name)
        builders.append(builder)
        return builder

    yield _make
    for builder in builders:
        builder.repo.close()


@pytest.fixture
def widget_repo(make_repo):
    """
    The acme/widget/aws module: v1.0.0 and v1.2.0 plus some noise refs.
    """
    builder = make_repo("widget.git")
    first = builder.commit(
        {
            "main.tf": b'resource "null_resource" "a" {}\n',
            "variables.tf": b'variable "name" {}\n',
            "scripts/setup.sh": (EXECUTABLE, b"#!/bin/sh\necho setup\n"),
        },
        commit_time=1_500_000_000,
    )
    second = builder.commit(
        {
            "main.tf": b'resource "null_resource" "b" {}\n',
            "outputs.tf": b'output "id" { value = "b" }\n',
            "modules/inner/main.tf": b"# inner module\n",
        },
        commit_time=1_600_000_000,
    )
    builder.tag("v1.0.0", first)
    builder.tag("v1.2.0", second, annotated=True)
    builder.tag("latest", second)
    builder.tag("vbroken", second)
    builder.branch("main", second)
    builder.commits = {"1.0.0": first, "1.2.0": second}
    return builder


@pytest.fixture
def registry_config(tmp_path, widget_repo):
    """RegistryConfig serving acme/widget/aws from widget_repo."""
    from module_registry.config import Hostname, ModuleConfig, ModuleCoordinateMap, RegistryConfig

    modules = ModuleCoordinateMap()
    modules.add("acme", "widget", "aws", ModuleConfig(str(widget_repo.path), "registry.json: modules[0]"))
    return RegistryConfig(hostname=Hostname.parse("registry.example.com"), modules=modules)


@pytest.fixture
def router(registry_config, logger):
    from module_registry.registry.router import ProtocolRouter
    return ProtocolRouter(
        registry_config.modules,
        registry_config.hostname.for_display(),
        logger=logger,
    )
