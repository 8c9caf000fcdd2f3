"""
Protocol Router
The module registry protocol operations, independent of HTTP.

Each operation looks the module up in the coordinate map, opens its git
repository for the duration of the call and answers from the repository's
current state. Operations raise NotFound for anything the client asked for
that doesn't exist (including malformed versions) and InternalError for
server-side failures, after logging the details that must not reach the
client.
"""

from dataclasses import dataclass
from typing import Generator, Optional

from module_registry.config.modules import ModuleConfig, ModuleCoordinateMap
from module_registry.registry import catalog
from module_registry.registry.archive import iter_version_archive
from module_registry.registry.errors import InternalError, NotFound, StoreAccessError
from module_registry.registry.models import ModuleList, ModuleSummary, VersionList
from module_registry.registry.store import GitStore
from module_registry.utils.logger import Logger
from module_registry.utils.semver import Version, try_parse

ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")


@dataclass
class Download:
    """A verified archive download, ready to stream."""
    filename: str
    chunks: Generator[bytes, None, None]

    def close(self) -> None:
        self.chunks.close()


class ProtocolRouter:
    """Answers registry protocol requests from the configured git repositories."""

    def __init__(self, modules: ModuleCoordinateMap, hostname: str, logger: Optional[Logger] = None):
        self.modules = modules
        self.hostname = hostname
        self.logger = logger or Logger("module-registry-router")

    def list_providers(self, namespace: str, name: str) -> ModuleList:
        """Latest version of every provider of a module that has one."""
        providers = self.modules.providers(namespace, name)
        if not providers:
            raise NotFound(f"{namespace}/{name}")

        result = ModuleList()
        for provider, cfg in sorted(providers.items()):
            try:
                store = GitStore.open(cfg.git_dir)
            except StoreAccessError as e:
                self._log_failure(f"failed to open git repository at {cfg.git_dir}", cfg, e)
                continue
            with store:
                try:
                    latest = catalog.latest_version(store)
                except StoreAccessError as e:
                    self._log_failure("failed to get latest version", cfg, e)
                    continue
            if latest is None:
                continue
            result.modules.append(ModuleSummary(namespace, name, provider, str(latest)))
        return result

    def module_latest(self, namespace: str, name: str, provider: str) -> ModuleSummary:
        cfg = self._lookup(namespace, name, provider)
        with self._open(cfg) as store:
            latest = self._guard(cfg, "failed to get latest version", catalog.latest_version, store)
        if latest is None:
            raise NotFound(f"{namespace}/{name}/{provider} has no versions")
        return ModuleSummary(namespace, name, provider, str(latest))

    def module_version(self, namespace: str, name: str, provider: str, version: str) -> ModuleSummary:
        cfg = self._lookup(namespace, name, provider)
        v = self._parse_version(version)
        with self._open(cfg) as store:
            self._require_version(cfg, store, v)
        return ModuleSummary(namespace, name, provider, str(v))

    def list_versions(self, namespace: str, name: str, provider: str) -> VersionList:
        cfg = self._lookup(namespace, name, provider)
        with self._open(cfg) as store:
            versions = self._guard(cfg, "failed to get all versions", catalog.list_versions, store)
        return VersionList(
            source=f"{self.hostname}/{namespace}/{name}/{provider}",
            versions=[str(v) for v in versions],
        )

    def download_location(self, namespace: str, name: str, provider: str, version: str) -> str:
        """Relative path of the archive for a version, keyed by its tree id."""
        cfg = self._lookup(namespace, name, provider)
        v = self._parse_version(version)
        with self._open(cfg) as store:
            tree_id = self._current_tree_id(cfg, store, v)
        return f"./download/{tree_id}"

    def open_archive(self, namespace: str, name: str, provider: str, version: str, tree_id: str) -> Download:
        """
        Check a download request against the version's current tree id.

        The tree id in the URL must match what the version tag resolves to
        now; a stale id, or the id of another version, is NotFound. On a
        match the returned Download owns the open repository and closes it
        once the archive has been streamed or the stream is abandoned.
        """
        cfg = self._lookup(namespace, name, provider)
        v = self._parse_version(version)
        for suffix in ARCHIVE_SUFFIXES:
            if tree_id.endswith(suffix):
                tree_id = tree_id[:-len(suffix)]
                break

        store = self._open(cfg)
        try:
            current = self._current_tree_id(cfg, store, v)
        except BaseException:
            store.close()
            raise
        if tree_id != current:
            store.close()
            self.logger.info(f"Wrong tree id {tree_id} given for version {v} of {cfg.origin}")
            raise NotFound(f"{namespace}/{name}/{provider}/{v}/download/{tree_id}")

        return Download(
            filename=f"{namespace}_{name}_{provider}_{v}.tgz",
            chunks=self._archive_chunks(cfg, store, v),
        )

    def _archive_chunks(self, cfg: ModuleConfig, store: GitStore, version: Version) -> Generator[bytes, None, None]:
        try:
            yield from iter_version_archive(store, version, compress=True)
        except (StoreAccessError, NotFound) as e:
            self._log_failure(f"failed to write archive for version {version}", cfg, e)
            raise InternalError("archive generation failed") from e
        finally:
            store.close()

    def _lookup(self, namespace: str, name: str, provider: str) -> ModuleConfig:
        cfg = self.modules.lookup(namespace, name, provider)
        if cfg is None:
            raise NotFound(f"{namespace}/{name}/{provider}")
        return cfg

    @staticmethod
    def _parse_version(version: str) -> Version:
        # Malformed and missing versions look the same to clients
        v = try_parse(version)
        if v is None:
            raise NotFound(version)
        return v

    def _open(self, cfg: ModuleConfig) -> GitStore:
        try:
            return GitStore.open(cfg.git_dir)
        except StoreAccessError as e:
            self._log_failure(f"failed to open git repository at {cfg.git_dir}", cfg, e)
            raise InternalError("module repository unavailable") from e

    def _require_version(self, cfg: ModuleConfig, store: GitStore, version: Version) -> None:
        exists = self._guard(cfg, f"failed to check version {version}", catalog.has_version, store, version)
        if not exists:
            raise NotFound(str(version))

    def _current_tree_id(self, cfg: ModuleConfig, store: GitStore, version: Version) -> str:
        self._require_version(cfg, store, version)
        try:
            return self._guard(
                cfg, f"failed to get tree id for version {version}",
                catalog.resolve_tree_id, store, version,
            )
        except NotFound:
            self.logger.info(f"Version {version} of {cfg.origin} has no tag named {catalog.tag_ref(version)}")
            raise

    def _guard(self, cfg: ModuleConfig, action: str, func, *args):
        try:
            return func(*args)
        except StoreAccessError as e:
            self._log_failure(action, cfg, e)
            raise InternalError(action) from e

    def _log_failure(self, action: str, cfg: ModuleConfig, error: Exception) -> None:
        self.logger.error(
            f"{action} for module configured at {cfg.origin}: {error}",
            extra={"git_dir": cfg.git_dir, "origin": cfg.origin},
        )
