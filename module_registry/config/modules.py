"""
Module configuration.

Loads the JSON configuration files that declare the registry hostname,
its listeners and the modules it serves. Every module is keyed by its
(namespace, name, provider) coordinate and points at a git repository.

Problems in any file are collected and reported together so a broken
configuration can be fixed in one pass.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from jsonschema import Draft7Validator

from module_registry.config.hostname import Hostname
from module_registry.config.listeners import ListenerConfig, parse_listeners

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "hostname": {"type": "string", "minLength": 1},
        "listeners": {
            "type": "object",
            "properties": {
                "http": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "address": {"type": "string", "minLength": 1},
                            "socket_number": {"type": "integer", "minimum": 0},
                            "tls": {
                                "type": "object",
                                "properties": {
                                    "cert_file": {"type": "string"},
                                    "key_file": {"type": "string"},
                                },
                                "required": ["cert_file", "key_file"],
                                "additionalProperties": False,
                            },
                        },
                        "additionalProperties": False,
                    },
                },
            },
            "additionalProperties": False,
        },
        "modules": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "namespace": {"type": "string", "minLength": 1},
                    "name": {"type": "string", "minLength": 1},
                    "provider": {"type": "string", "minLength": 1},
                    "git_dir": {"type": "string", "minLength": 1},
                },
                "required": ["namespace", "name", "provider", "git_dir"],
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}


class ConfigError(Exception):
    """One or more problems found while loading configuration."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))


@dataclass(frozen=True, slots=True)
class ModuleConfig:
    """Where one module's repository lives and where it was declared."""
    git_dir: str
    origin: str


class ModuleCoordinateMap:
    """Configured modules by namespace, then name, then provider."""

    def __init__(self):
        self._modules: Dict[str, Dict[str, Dict[str, ModuleConfig]]] = {}

    def add(self, namespace: str, name: str, provider: str, cfg: ModuleConfig) -> Optional[ModuleConfig]:
        """Register a module. Returns the earlier declaration instead if there is one."""
        providers = self._modules.setdefault(namespace, {}).setdefault(name, {})
        existing = providers.get(provider)
        if existing is not None:
            return existing
        providers[provider] = cfg
        return None

    def lookup(self, namespace: str, name: str, provider: str) -> Optional[ModuleConfig]:
        return self.providers(namespace, name).get(provider)

    def providers(self, namespace: str, name: str) -> Dict[str, ModuleConfig]:
        return dict(self._modules.get(namespace, {}).get(name, {}))

    def items(self) -> Iterator[Tuple[str, str, str, ModuleConfig]]:
        for namespace, names in sorted(self._modules.items()):
            for name, providers in sorted(names.items()):
                for provider, cfg in sorted(providers.items()):
                    yield namespace, name, provider, cfg

    def __len__(self) -> int:
        return sum(len(providers) for names in self._modules.values() for providers in names.values())


@dataclass
class RegistryConfig:
    hostname: Hostname
    modules: ModuleCoordinateMap
    listeners: List[ListenerConfig] = field(default_factory=list)


def config_files(paths: Iterable[str]) -> Tuple[List[Path], List[str]]:
    """Expand command line paths; a directory contributes its *.json files."""
    files: List[Path] = []
    errors: List[str] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(sorted(p for p in path.glob("*.json") if p.is_file()))
        elif path.is_file():
            files.append(path)
        else:
            errors.append(f"{raw}: configuration file not found")
    return files, errors


def load_config(paths: Iterable[str]) -> RegistryConfig:
    """Load and merge configuration files, raising ConfigError on any problem."""
    paths = list(paths)
    if not paths:
        raise ConfigError([
            "No configuration files specified: at least one configuration file "
            "or directory must be given"
        ])

    files, errors = config_files(paths)

    documents: List[Tuple[Path, Dict[str, Any]]] = []
    validator = Draft7Validator(CONFIG_SCHEMA)
    for path in files:
        try:
            document = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            errors.append(f"{path}: {e}")
            continue
        problems = sorted(validator.iter_errors(document), key=lambda err: list(err.absolute_path))
        for problem in problems:
            location = "/".join(str(p) for p in problem.absolute_path) or "(root)"
            errors.append(f"{path}: {location}: {problem.message}")
        if not problems:
            documents.append((path, document))

    # Stop here if any file was unreadable; the rest would only pile on noise
    if errors:
        raise ConfigError(errors)

    hostname: Optional[Hostname] = None
    hostname_origin = ""
    modules = ModuleCoordinateMap()
    listeners: List[ListenerConfig] = []

    for path, document in documents:
        if "hostname" in document:
            if hostname_origin:
                errors.append(f'{path}: "hostname" was already set in {hostname_origin}')
            else:
                hostname_origin = str(path)
                try:
                    hostname = Hostname.parse(document["hostname"])
                except ValueError as e:
                    errors.append(f"{path}: invalid hostname: {e}")

        found, listener_errors = parse_listeners(document.get("listeners", {}), str(path))
        listeners.extend(found)
        errors.extend(listener_errors)

        for index, entry in enumerate(document.get("modules", [])):
            origin = f"{path}: modules[{index}]"
            git_dir = Path(entry["git_dir"]).expanduser()
            if not git_dir.is_absolute():
                git_dir = path.parent / git_dir
            cfg = ModuleConfig(git_dir=str(git_dir), origin=origin)
            existing = modules.add(entry["namespace"], entry["name"], entry["provider"], cfg)
            if existing is not None:
                errors.append(
                    f'{origin}: duplicate module declaration: a module for "{entry["namespace"]}" '
                    f'"{entry["name"]}" "{entry["provider"]}" was already declared at {existing.origin}'
                )

    if not hostname_origin:
        errors.append('The "hostname" setting is required')

    if errors:
        raise ConfigError(errors)
    return RegistryConfig(hostname=hostname, modules=modules, listeners=listeners)
