"""
Git Store
Read-only access to the git repository backing a module.

A GitStore is opened per request and closed when the request is done.
Nothing read through it is cached.
"""

import stat
import zlib
from dataclasses import dataclass
from typing import List

from dulwich.errors import FileFormatException, NotGitRepository
from dulwich.objects import S_ISGITLINK, Blob, Commit, Tag, Tree
from dulwich.repo import Repo

from module_registry.registry.errors import NotFound, StoreAccessError

# Store read failures dulwich surfaces on a damaged or vanishing repository
READ_ERRORS = (KeyError, OSError, ValueError, FileFormatException, zlib.error)


@dataclass(slots=True)
class TreeItem:
    """One entry of a git tree, in the order the tree stores it."""
    name: bytes
    mode: int
    sha: bytes

    @property
    def is_tree(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_gitlink(self) -> bool:
        return S_ISGITLINK(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.mode)


class GitStore:
    """Capability set over one git repository: refs, commits, trees, blobs."""

    def __init__(self, repo: Repo, path: str):
        self._repo = repo
        self.path = path

    @classmethod
    def open(cls, path: str) -> "GitStore":
        try:
            repo = Repo(path)
        except NotGitRepository as e:
            raise StoreAccessError(f"not a git repository: {path}") from e
        except READ_ERRORS as e:
            raise StoreAccessError(f"cannot open {path}: {e}") from e
        return cls(repo, path)

    def close(self) -> None:
        self._repo.close()

    def __enter__(self) -> "GitStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def ref_names(self) -> List[str]:
        """All reference names in the repository, sorted."""
        try:
            names = self._repo.refs.keys()
        except READ_ERRORS as e:
            raise StoreAccessError(f"cannot enumerate references in {self.path}: {e}") from e
        return sorted(name.decode("utf-8", "replace") for name in names)

    def peel_commit(self, ref_name: str) -> Commit:
        """Follow a reference, through any annotated tags, to its commit."""
        try:
            sha = self._repo.refs[ref_name.encode("utf-8")]
        except KeyError as e:
            raise NotFound(ref_name) from e
        except READ_ERRORS as e:
            raise StoreAccessError(f"cannot read {ref_name} in {self.path}: {e}") from e

        obj = self._read_object(sha)
        while isinstance(obj, Tag):
            _, target = obj.object
            obj = self._read_object(target)
        if not isinstance(obj, Commit):
            raise NotFound(f"{ref_name} does not point at a commit")
        return obj

    def read_tree(self, sha: bytes) -> List[TreeItem]:
        tree = self._read_object(sha)
        if not isinstance(tree, Tree):
            raise StoreAccessError(f"object {sha.decode('ascii')} in {self.path} is not a tree")
        return [TreeItem(entry.path, entry.mode, entry.sha) for entry in tree.iteritems()]

    def read_blob(self, sha: bytes) -> bytes:
        blob = self._read_object(sha)
        if not isinstance(blob, Blob):
            raise StoreAccessError(f"object {sha.decode('ascii')} in {self.path} is not a blob")
        return blob.as_raw_string()

    def _read_object(self, sha: bytes):
        try:
            return self._repo.object_store[sha]
        except READ_ERRORS as e:
            raise StoreAccessError(f"cannot read object {sha.decode('ascii')} in {self.path}: {e}") from e
