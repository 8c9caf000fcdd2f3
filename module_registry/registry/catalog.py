"""
Version Catalog
Works out which versions of a module exist from its version tags.

Every call re-reads the references, so answers always reflect the
repository as it is right now.
"""

from typing import List, Optional

from module_registry.registry.store import GitStore
from module_registry.utils.semver import Version, try_parse

TAG_PREFIX = "refs/tags/v"


def version_from_ref(ref_name: str) -> Optional[Version]:
    """Parse a version tag name, or return None if it isn't one."""
    if not ref_name.startswith(TAG_PREFIX):
        return None
    return try_parse(ref_name[len(TAG_PREFIX):])


def tag_ref(version: Version) -> str:
    return f"{TAG_PREFIX}{version}"


def _tagged_versions(store: GitStore) -> List[Version]:
    return [v for v in (version_from_ref(name) for name in store.ref_names()) if v is not None]


def list_versions(store: GitStore) -> List[Version]:
    """All versions of the module, latest first, with no two comparing equal."""
    unique: List[Version] = []
    seen = set()
    for version in _tagged_versions(store):
        if version in seen:
            continue
        seen.add(version)
        unique.append(version)
    unique.sort(reverse=True)
    return unique


def latest_version(store: GitStore) -> Optional[Version]:
    versions = list_versions(store)
    return versions[0] if versions else None


def has_version(store: GitStore, version: Version) -> bool:
    return any(v == version for v in _tagged_versions(store))


def resolve_tree_id(store: GitStore, version: Version) -> str:
    """Hex id of the root tree of the commit tagged for this version."""
    commit = store.peel_commit(tag_ref(version))
    return commit.tree.decode("ascii")
