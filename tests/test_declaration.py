"""Tests for hashroute.declaration: @hash_params and @Hash docstrings."""

import logging

import pytest

from hashroute.declaration import (
    HASH_ATTRIBUTE,
    HandlerHashing,
    HashConfiguration,
    extract_legacy,
    extract_modern,
    has_legacy_declaration,
    has_modern_declaration,
    hash_params,
)
from hashroute.errors import InvalidParameter


def _with_doc(doc: str):
    def handler() -> None: ...

    handler.__doc__ = doc
    return handler


class TestHashConfiguration:
    def test_defaults(self) -> None:
        config = HashConfiguration()
        assert config.parameters == ()
        assert config.hasher == "default"
        assert config.has_parameters() is False

    def test_dedupes_preserving_order(self) -> None:
        config = HashConfiguration(("id", "user_id", "id"))
        assert config.parameters == ("id", "user_id")
        assert config.has_parameter("user_id")
        assert not config.has_parameter("slug")

    def test_single_name(self) -> None:
        assert HashConfiguration.of("id").parameters == ("id",)

    def test_blank_hasher_is_default(self) -> None:
        assert HashConfiguration(("id",), "  ").hasher == "default"

    @pytest.mark.parametrize("name", ["1id", "user-id", "", "a" * 101, "id;drop"])
    def test_invalid_name(self, name: str) -> None:
        with pytest.raises(InvalidParameter):
            HashConfiguration((name,))

    def test_non_string_name(self) -> None:
        with pytest.raises(InvalidParameter, match="must be a string"):
            HashConfiguration((1,))  # type: ignore[arg-type]

    def test_longest_valid_name(self) -> None:
        name = "a" * 100
        assert HashConfiguration((name,)).parameters == (name,)

    def test_too_many(self) -> None:
        with pytest.raises(InvalidParameter, match="Too many"):
            HashConfiguration(tuple(f"p{i}" for i in range(21)))

    @pytest.mark.parametrize("hasher", ["bad hasher", "x" * 51, 5])
    def test_invalid_hasher(self, hasher: object) -> None:
        with pytest.raises(InvalidParameter):
            HashConfiguration(("id",), hasher)  # type: ignore[arg-type]

    def test_of_rejects_non_iterable(self) -> None:
        with pytest.raises(InvalidParameter):
            HashConfiguration.of(42)  # type: ignore[arg-type]


class TestHashParams:
    def test_attaches_configuration(self) -> None:
        @hash_params("id")
        def show(id: int) -> None: ...

        assert getattr(show, HASH_ATTRIBUTE) == (HashConfiguration(("id",)),)
        assert has_modern_declaration(show)

    def test_list_of_names(self) -> None:
        @hash_params(["id", "user_id"])
        def compare(id: int, user_id: int) -> None: ...

        assert extract_modern(compare).parameters == ("id", "user_id")

    def test_returns_same_function(self) -> None:
        def show(id: int) -> None: ...

        assert hash_params("id")(show) is show

    def test_repeatable_keeps_source_order(self) -> None:
        @hash_params("id")
        @hash_params("user_id", hasher="secure")
        def transfer(id: int, user_id: int) -> None: ...

        hashing = extract_modern(transfer)
        assert hashing.hashers == ("default", "secure")
        assert hashing.configurations[0].parameters == ("id",)
        assert hashing.configurations[1].parameters == ("user_id",)

    def test_same_hasher_merged(self) -> None:
        @hash_params("id")
        @hash_params("user_id")
        def compare(id: int, user_id: int) -> None: ...

        hashing = extract_modern(compare)
        assert len(hashing.configurations) == 1
        assert hashing.parameters == ("id", "user_id")

    def test_conflicting_hashers(self) -> None:
        with pytest.raises(InvalidParameter, match="'id'"):

            @hash_params("id")
            @hash_params("id", hasher="secure")
            def show(id: int) -> None: ...

    def test_invalid_name_fails_at_decoration(self) -> None:
        with pytest.raises(InvalidParameter):
            hash_params("not-valid")

    def test_merged_limit_fails_at_decoration(self) -> None:
        first = [f"a{i}" for i in range(11)]
        second = [f"b{i}" for i in range(11)]
        with pytest.raises(InvalidParameter, match="Too many parameters"):

            @hash_params(first)
            @hash_params(second)
            def show(**params: int) -> None: ...

    def test_limit_is_per_hasher(self) -> None:
        @hash_params([f"a{i}" for i in range(11)])
        @hash_params([f"b{i}" for i in range(11)], hasher="secure")
        def show(**params: int) -> None: ...

        assert len(extract_modern(show).parameters) == 22


class TestExtractModern:
    def test_no_declaration(self) -> None:
        def plain() -> None: ...

        assert extract_modern(plain) is None
        assert not has_modern_declaration(plain)

    def test_source(self) -> None:
        @hash_params("id")
        def show(id: int) -> None: ...

        hashing = extract_modern(show)
        assert isinstance(hashing, HandlerHashing)
        assert hashing.source == "modern"
        assert hashing.duplicate is False


class TestExtractLegacy:
    def test_single(self) -> None:
        hashing = extract_legacy(_with_doc('Show an order.\n\n@Hash("id")\n'))
        assert hashing.parameters == ("id",)
        assert hashing.hashers == ("default",)
        assert hashing.source == "legacy"

    def test_single_quotes(self) -> None:
        assert extract_legacy(_with_doc("@Hash('id')")).parameters == ("id",)

    def test_set_form(self) -> None:
        hashing = extract_legacy(_with_doc('@Hash({"id", "user_id"})'))
        assert hashing.parameters == ("id", "user_id")

    def test_list_form(self) -> None:
        hashing = extract_legacy(_with_doc('@Hash(["id", "other"])'))
        assert hashing.parameters == ("id", "other")

    def test_drops_invalid_entries(self) -> None:
        hashing = extract_legacy(_with_doc('@Hash({"id", 42, "bad-name", "user_id"})'))
        assert hashing.parameters == ("id", "user_id")

    def test_all_entries_invalid(self) -> None:
        hashing = extract_legacy(_with_doc('@Hash({"1bad"})'))
        assert hashing is not None
        assert hashing.has_parameters() is False

    def test_no_declaration(self) -> None:
        assert extract_legacy(_with_doc("Show an order.")) is None
        assert extract_legacy(_with_doc("")) is None
        assert not has_legacy_declaration(_with_doc("Show an order."))

    def test_no_docstring(self) -> None:
        def plain() -> None:
            pass

        assert extract_legacy(plain) is None

    def test_malformed(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="hashroute.resolver"):
            assert extract_legacy(_with_doc("@Hash(id)")) is None
        assert "malformed" in caplog.text
        assert not has_legacy_declaration(_with_doc("@Hash(id)"))

    def test_prose_mention(self, caplog: pytest.LogCaptureFixture) -> None:
        handler = _with_doc("Tokens are built with @Hashids.")
        with caplog.at_level(logging.WARNING, logger="hashroute.resolver"):
            assert extract_legacy(handler) is None
            assert not has_legacy_declaration(handler)
        assert caplog.text == ""

    def test_too_many_entries(self, caplog: pytest.LogCaptureFixture) -> None:
        names = ", ".join(f'"p{i}"' for i in range(21))
        with caplog.at_level(logging.WARNING, logger="hashroute.resolver"):
            assert extract_legacy(_with_doc(f"@Hash([{names}])")) is None
        assert "more than 20" in caplog.text

    def test_oversized_docstring(self, caplog: pytest.LogCaptureFixture) -> None:
        doc = '@Hash("id")\n' + "x" * 10_001
        with caplog.at_level(logging.WARNING, logger="hashroute.resolver"):
            assert extract_legacy(_with_doc(doc)) is None
        assert "exceeds" in caplog.text
