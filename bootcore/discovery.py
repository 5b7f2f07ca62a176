"""
bootcore - Component Discovery & Resolution

Every filesystem and package loading concern lives here. Discovery turns a
list of roots into registry entries; resolution picks one entry for a
requested logical name.

Roots:
- Local directories, scanned recursively in sorted order for Python files
  named by convention (``Good.module.py``, ``good_module.py``,
  ``good-module.py``)
- Entry-point groups (``bootcore.apps``, ``bootcore.tasks``,
  ``bootcore.modules``, ``bootcore.environments``) for installed packages

Local entries always precede third-party ones.

Usage:
    entries = discover(component_roots("./src", "module"), "module")
    resolved = resolve(entries, "good", "module", "module_name")
"""
from __future__ import annotations

import hashlib
import importlib.util
import logging
import re
import sys
from dataclasses import dataclass
from importlib.metadata import entry_points
from pathlib import Path
from types import ModuleType
from typing import Iterable, List, Optional, Sequence, Union

from bootcore.errors import ComponentLoadError, DiscoveryNotFoundError
from bootcore.naming import DerivedNames, param_case, pascal_case

logger = logging.getLogger("bootcore.discovery")

LOCAL = "local"
THIRD_PARTY = "third-party"

ENTRY_POINT_PREFIX = "bootcore"


@dataclass(frozen=True)
class EntryPointGroup:
    """A third-party discovery root."""

    group: str


Root = Union[str, Path, EntryPointGroup]


@dataclass(frozen=True)
class RegistryEntry:
    """A discovered candidate and its load outcome."""

    location: str
    name: str
    exports: Optional[type] = None
    error: Optional[BaseException] = None
    source: str = LOCAL

    @property
    def loaded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ResolvedComponent:
    entry: RegistryEntry
    names: DerivedNames

    @property
    def exports(self) -> Optional[type]:
        return self.entry.exports


def component_roots(location: Optional[str], kind: str) -> List[Root]:
    """Local directory (when configured) followed by the kind's entry-point group."""
    roots: List[Root] = []
    if location:
        roots.append(Path(location))
    roots.append(EntryPointGroup(f"{ENTRY_POINT_PREFIX}.{kind}s"))
    return roots


# =============================================================================
# LOCAL FILES
# =============================================================================


def _file_pattern(token: str) -> re.Pattern[str]:
    return re.compile(rf"[._-]{re.escape(token)}$", re.IGNORECASE)


def _module_name(path: Path, token: str) -> str:
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:12]
    return f"bootcore.discovered.{token}.{digest}"


def _load_file(path: Path, token: str) -> ModuleType:
    """Import a file once; repeated discovery reuses the loaded module."""
    name = _module_name(path, token)
    if name in sys.modules:
        return sys.modules[name]

    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def select_export(module: ModuleType, token: str) -> Optional[type]:
    """The class named after the token, else the first class the file defines."""
    classes = [
        value
        for value in vars(module).values()
        if isinstance(value, type) and value.__module__ == module.__name__
    ]
    suffix = pascal_case(token)
    for cls in classes:
        if cls.__name__.endswith(suffix):
            return cls
    return classes[0] if classes else None


def _scan_directory(root: Path, token: str) -> List[RegistryEntry]:
    if not root.is_dir():
        return []

    pattern = _file_pattern(token)
    entries: List[RegistryEntry] = []

    for path in sorted(root.rglob("*.py")):
        if "__pycache__" in path.parts or not pattern.search(path.stem):
            continue

        try:
            module = _load_file(path, token)
        except Exception as e:
            logger.debug(f"Failed to load {path}: {e}")
            entries.append(RegistryEntry(location=str(path), name=path.name, error=e))
            continue

        entries.append(
            RegistryEntry(location=str(path), name=path.name, exports=select_export(module, token))
        )

    return entries


# =============================================================================
# ENTRY POINTS
# =============================================================================


def _scan_entry_points(group: str) -> List[RegistryEntry]:
    entries: List[RegistryEntry] = []

    for ep in sorted(entry_points(group=group), key=lambda ep: ep.name):
        location = f"{group}:{ep.name}"
        try:
            exports = ep.load()
        except Exception as e:
            logger.debug(f"Failed to load entry point {location}: {e}")
            entries.append(RegistryEntry(location=location, name=ep.name, error=e, source=THIRD_PARTY))
            continue

        entries.append(
            RegistryEntry(
                location=location,
                name=ep.name,
                exports=exports if isinstance(exports, type) else None,
                source=THIRD_PARTY,
            )
        )

    return entries


def discover(roots: Iterable[Root], token: str) -> List[RegistryEntry]:
    """
    Collect registry entries for ``token`` from every root.

    Load failures are kept as entries carrying the error; discovery itself
    never raises for a broken candidate.
    """
    roots = list(roots)
    local = [root for root in roots if not isinstance(root, EntryPointGroup)]
    groups = [root for root in roots if isinstance(root, EntryPointGroup)]

    entries: List[RegistryEntry] = []
    for root in local:
        entries.extend(_scan_directory(Path(root), token))
    for group in groups:
        entries.extend(_scan_entry_points(group.group))
    return entries


# =============================================================================
# RESOLUTION
# =============================================================================


def metadata_name(exports: type, kind_attribute: Optional[str] = None) -> str:
    """Declared logical name of an export, else its class name."""
    if kind_attribute:
        declared = getattr(exports, kind_attribute, None)
        if isinstance(declared, str) and declared:
            return declared
    return exports.__name__


def _name_pattern(names: DerivedNames, token: str) -> re.Pattern[str]:
    forms = "|".join(re.escape(form) for form in {names.pascal, names.param, names.snake} if form)
    return re.compile(rf"^({forms})([._-]{re.escape(token)})?(\.py)?$", re.IGNORECASE)


def resolve(
    entries: Sequence[RegistryEntry],
    name: str,
    token: str,
    kind_attribute: Optional[str] = None,
) -> ResolvedComponent:
    """
    Pick the first entry matching ``name``.

    An entry matches when its declared name equals ``name`` in param-case, or
    when its file or entry-point name is ``name`` in any case form, optionally
    followed by the token.

    Raises:
        DiscoveryNotFoundError: nothing matches
        ComponentLoadError: the matching entry failed to load
    """
    names = DerivedNames.from_name(name)
    wanted = {names.param, param_case(f"{name} {token}")}
    pattern = _name_pattern(names, token)

    for entry in entries:
        by_metadata = entry.exports is not None and param_case(metadata_name(entry.exports, kind_attribute)) in wanted
        if not by_metadata and not pattern.match(entry.name):
            continue

        if entry.error is not None:
            raise ComponentLoadError(
                f"There was an error loading {token} {names.param}",
                component=names.param,
                location=entry.location,
                cause=entry.error,
            ) from entry.error

        return ResolvedComponent(entry=entry, names=names)

    raise DiscoveryNotFoundError(
        f"No {token} named {name} was found",
        component=names.param,
        requested=name,
        token=token,
        suggestions=[f"Check the {token} location in the core config and the file naming convention"],
    )


__all__ = [
    "LOCAL",
    "THIRD_PARTY",
    "EntryPointGroup",
    "RegistryEntry",
    "ResolvedComponent",
    "component_roots",
    "discover",
    "select_export",
    "metadata_name",
    "resolve",
]
