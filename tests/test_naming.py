"""
Tests for bootcore/naming.py - Name Forms.
"""
import pytest

from bootcore.naming import DerivedNames, camel_case, param_case, pascal_case, snake_case, split_words


class TestSplitWords:
    """Tests for splitting names across conventions."""

    @pytest.mark.parametrize(
        "name, words",
        [
            ("GoodModule", ["good", "module"]),
            ("good-module", ["good", "module"]),
            ("good_module", ["good", "module"]),
            ("goodModule", ["good", "module"]),
            ("HTTPServer", ["http", "server"]),
            ("AModule", ["a", "module"]),
            ("s3 uploader", ["s3", "uploader"]),
            ("", []),
        ],
    )
    def test_split(self, name, words):
        assert split_words(name) == words


class TestCaseForms:
    """Tests for individual case conversions."""

    def test_camel(self):
        assert camel_case("not-production") == "notProduction"

    def test_pascal(self):
        assert pascal_case("not-production") == "NotProduction"

    def test_param(self):
        assert param_case("NotProduction") == "not-production"

    def test_snake(self):
        assert snake_case("beforeModulesLoad") == "before_modules_load"


class TestDerivedNames:
    """Tests for the DerivedNames bundle."""

    def test_from_name(self):
        names = DerivedNames.from_name("StartError")

        assert names.raw == "StartError"
        assert names.camel == "startError"
        assert names.param == "start-error"
        assert names.pascal == "StartError"
        assert names.snake == "start_error"

    def test_is_immutable(self):
        names = DerivedNames.from_name("good")

        with pytest.raises(AttributeError):
            names.param = "bad"
