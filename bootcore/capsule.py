"""
bootcore - Capsule

The single process-wide state object. A runner builds one capsule at startup
and passes it to every orchestration function; components receive it as
their ``capsule`` attribute to look up other loaded modules.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from bootcore.naming import DerivedNames, camel_case
from bootcore.observability.logging import CoreLogger

if TYPE_CHECKING:
    from bootcore.components import CoreApp, CoreEnvironment, CoreModule, CoreTask
    from bootcore.config import CoreConfig
    from bootcore.discovery import RegistryEntry


class ProcessType(str, Enum):
    APP = "app"
    TASK = "task"
    CONSOLE = "console"


@dataclass
class ModuleRegistration:
    """A prepared module and where it came from."""

    entry: "RegistryEntry"
    instance: "CoreModule"
    names: DerivedNames


def module_key(names: DerivedNames) -> str:
    """``good`` → ``goodModule``; ``GoodModule`` stays ``goodModule``."""
    if names.param == "module" or names.param.endswith("-module"):
        return names.camel
    return camel_case(f"{names.raw} module")


@dataclass
class Capsule:
    logger: CoreLogger = field(default_factory=CoreLogger)
    process_type: Optional[ProcessType] = None
    core_config: Optional["CoreConfig"] = None
    project_config: Dict[str, Any] = field(default_factory=dict)

    app_class: Optional[type] = None
    app_instance: Optional["CoreApp"] = None
    app_config: Any = None
    task_class: Optional[type] = None
    task_instance: Optional["CoreTask"] = None
    component_names: Optional[DerivedNames] = None
    args: Dict[str, Any] = field(default_factory=dict)

    modules: Dict[str, ModuleRegistration] = field(default_factory=dict)
    environments: List["CoreEnvironment"] = field(default_factory=list)

    stopping: bool = False
    stoppable: bool = False

    def get_module(self, name: str) -> Optional["CoreModule"]:
        """Look up a loaded module by any form of its name."""
        registration = self.modules.get(module_key(DerivedNames.from_name(name)))
        return registration.instance if registration else None

    @property
    def module_instances(self) -> Dict[str, "CoreModule"]:
        return {key: registration.instance for key, registration in self.modules.items()}

    def clear_component(self) -> None:
        """Forget the app or task; used after a failed startup."""
        self.app_class = None
        self.app_instance = None
        self.app_config = None
        self.task_class = None
        self.task_instance = None


__all__ = ["ProcessType", "ModuleRegistration", "Capsule", "module_key"]
