"""
Tests for bootcore/components.py - Component Base Classes.
"""
import pytest

from bootcore import components
from bootcore.components import CoreApp, CoreModule, CoreTask, is_component


class DuckModule:
    async def prepare(self):
        pass

    async def release(self):
        pass


class RealModule(CoreModule):
    pass


class TestIsComponent:
    """Tests for is_component."""

    def test_subclass(self):
        assert is_component(RealModule, CoreModule)

    @pytest.mark.parametrize("exports", [CoreModule, DuckModule, RealModule(None, None), None, "RealModule"])
    def test_rejected_exports(self, exports):
        assert not is_component(exports, CoreModule)

    def test_kinds_do_not_mix(self):
        assert not is_component(RealModule, CoreApp)
        assert not is_component(RealModule, CoreTask)

    def test_only_base_classes_are_exported(self):
        assert components.__all__ == [
            "CoreComponent",
            "CoreModule",
            "CoreApp",
            "CoreTask",
            "CoreEnvironment",
            "is_component",
        ]
