"""
Archive Builder
Serializes the tree tagged for a version as a tar stream.

Archives are reproducible: every entry gets the committer timestamp of the
tagged commit, entries follow git tree order, and ownership fields are
left empty. Symlinks are written as regular files containing the link
target, and submodules (gitlinks) are left out entirely.
"""

import gzip
import io
import tarfile
from typing import BinaryIO, Iterator, List

from module_registry.registry.catalog import tag_ref
from module_registry.registry.store import GitStore
from module_registry.utils.semver import Version

DIR_MODE = 0o755
FILE_MODE = 0o644


class _ChunkBuffer:
    """Write-only sink that hands back whatever was written since the last drain."""

    def __init__(self):
        self._chunks: List[bytes] = []

    def write(self, data) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def iter_version_archive(store: GitStore, version: Version, compress: bool = False) -> Iterator[bytes]:
    """
    Yield the archive for a version chunk by chunk.

    Raises NotFound if the version tag is gone and StoreAccessError on any
    read failure. Chunks already yielded stay yielded; the end-of-archive
    marker is only written once the whole tree has been walked, so a
    stream cut short by an error never looks complete.
    """
    commit = store.peel_commit(tag_ref(version))
    mtime = commit.commit_time

    buffer = _ChunkBuffer()
    sink = gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) if compress else buffer
    tar = tarfile.open(fileobj=sink, mode="w|", format=tarfile.PAX_FORMAT)

    for _ in _walk_tree(store, tar, commit.tree, "", mtime):
        chunk = buffer.drain()
        if chunk:
            yield chunk

    tar.close()
    if compress:
        sink.close()
    chunk = buffer.drain()
    if chunk:
        yield chunk


def write_version_archive(store: GitStore, version: Version, fileobj: BinaryIO) -> None:
    """Write the uncompressed tar archive for a version to fileobj."""
    for chunk in iter_version_archive(store, version):
        fileobj.write(chunk)


def _walk_tree(store: GitStore, tar: tarfile.TarFile, tree_sha: bytes, prefix: str, mtime: int) -> Iterator[None]:
    for item in store.read_tree(tree_sha):
        name = prefix + item.name.decode("utf-8", "surrogateescape")

        if item.is_gitlink:
            continue

        if item.is_tree:
            info = _entry(name + "/", mtime)
            info.type = tarfile.DIRTYPE
            info.mode = DIR_MODE
            tar.addfile(info)
            yield
            yield from _walk_tree(store, tar, item.sha, name + "/", mtime)
            continue

        data = store.read_blob(item.sha)
        info = _entry(name, mtime)
        info.type = tarfile.REGTYPE
        info.mode = FILE_MODE if item.is_symlink else item.mode & 0o777
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))
        yield


def _entry(name: str, mtime: int) -> tarfile.TarInfo:
    info = tarfile.TarInfo(name)
    info.mtime = mtime
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    return info
