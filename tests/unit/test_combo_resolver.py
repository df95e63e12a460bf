"""Tests for combination column resolution and cycle detection."""

import logging

import pytest

from mdmengine.errors import CyclicReferenceError
from mdmengine.managers.combo import ComboResolver
from mdmengine.models import Attribute, AttributeOption, AttributeType, ComboSpec


def plain(code, attr_type=AttributeType.TEXT):
    return Attribute(
        id=f"{code}-id",
        data_model_id="model-1",
        code=code,
        display_name=code,
        type=attr_type,
    )


def combo(code, members, strategy="GROUPING", separator=" "):
    return Attribute(
        id=f"{code}-id",
        data_model_id="model-1",
        code=code,
        display_name=code,
        type=AttributeType.COMBO,
        combo=ComboSpec(
            strategy=strategy,
            separator=separator,
            members=[{"attribute_id": f"{m}-id", "code": m} for m in members],
        ),
    )


class TestResolve:
    """Test rendering of combination columns."""

    def test_left_right(self):
        full_name = combo("full_name", ["first_name", "last_name"], strategy="LEFT_RIGHT")
        resolver = ComboResolver([plain("first_name"), plain("last_name"), full_name])

        values = {"first_name-id": "Jane", "last_name-id": "Doe"}
        assert resolver.resolve(full_name, values) == "Jane Doe"

    def test_left_right_missing_left(self):
        full_name = combo("full_name", ["first_name", "last_name"], strategy="LEFT_RIGHT")
        resolver = ComboResolver([plain("first_name"), plain("last_name"), full_name])

        assert resolver.resolve(full_name, {"last_name-id": "Doe"}) == " Doe"

    def test_grouping_keeps_empty_positions(self):
        group = combo("abc", ["a", "b", "c"], separator=", ")
        resolver = ComboResolver([plain("a"), plain("b"), plain("c"), group])

        assert resolver.resolve(group, {"a-id": "A", "c-id": "C"}) == "A, , C"

    def test_single_member_grouping(self):
        group = combo("only", ["a"], separator="-")
        resolver = ComboResolver([plain("a"), group])
        assert resolver.resolve(group, {"a-id": "x"}) == "x"

    def test_nested_combos(self):
        name = combo("name", ["first", "last"], strategy="LEFT_RIGHT")
        label = combo("label", ["name", "city"], separator=" / ")
        resolver = ComboResolver([plain("first"), plain("last"), plain("city"), name, label])

        values = {"first-id": "Jane", "last-id": "Doe", "city-id": "Oslo"}
        assert resolver.resolve(label, values) == "Jane Doe / Oslo"

    def test_multi_valued_members_render_joined(self):
        tags = plain("tags", AttributeType.MULTI_SELECT)
        tags.options = [AttributeOption(attribute_id=tags.id, value=v, label=v) for v in ("a", "b")]
        summary = combo("summary", ["title", "tags"], separator=": ")
        resolver = ComboResolver([plain("title"), tags, summary])

        values = {"title-id": "Post", "tags-id": '["a", "b"]'}
        assert resolver.resolve(summary, values) == "Post: a, b"

    def test_plain_attribute_resolves_to_its_value(self):
        first = plain("first")
        resolver = ComboResolver([first])
        assert resolver.resolve(first, {}) == ""
        assert resolver.resolve(first, {"first-id": "Jane"}) == "Jane"

    def test_idempotent(self):
        full_name = combo("full_name", ["first_name", "last_name"], strategy="LEFT_RIGHT")
        resolver = ComboResolver([plain("first_name"), plain("last_name"), full_name])
        values = {"first_name-id": "Jane", "last_name-id": "Doe"}

        first = resolver.resolve_all(values)
        second = resolver.resolve_all(values)
        assert first == second
        assert first[0] == {"full_name": "Jane Doe"}

    def test_memo_is_reused_within_a_pass(self):
        name = combo("name", ["first", "last"], strategy="LEFT_RIGHT")
        resolver = ComboResolver([plain("first"), plain("last"), name])

        memo = {}
        resolver.resolve(name, {"first-id": "Jane", "last-id": "Doe"}, memo=memo)
        assert memo == {"name-id": "Jane Doe"}

        # A memoized sub-combination is not recomputed
        memo["name-id"] = "cached"
        assert resolver.resolve(name, {}, memo=memo) == "cached"

    def test_shared_sub_combination_resolved_once(self):
        name = combo("name", ["first", "last"], strategy="LEFT_RIGHT")
        upper = combo("upper", ["name", "city"])
        lower = combo("lower", ["city", "name"])
        resolver = ComboResolver([plain("first"), plain("last"), plain("city"), name, upper, lower])

        calls = []
        original = resolver.resolve

        def counting(attribute, *args, **kwargs):
            if attribute.code == "name":
                calls.append(attribute.code)
            return original(attribute, *args, **kwargs)

        resolver.resolve = counting
        derived, diagnostics = resolver.resolve_all({"first-id": "A", "last-id": "B", "city-id": "C"})

        assert derived == {"name": "A B", "upper": "A B C", "lower": "C A B"}
        assert diagnostics == []
        # Resolved for itself and looked up by both parents; only the first call computes
        assert len(calls) == 3


class TestDanglingMembers:
    """A deleted member renders as an empty string with a diagnostic."""

    def test_missing_member(self, caplog):
        full_name = combo("full_name", ["first_name", "last_name"], strategy="LEFT_RIGHT")
        resolver = ComboResolver([plain("last_name"), full_name])

        with caplog.at_level(logging.WARNING, logger="mdmengine.managers.combo"):
            derived, diagnostics = resolver.resolve_all({"last_name-id": "Doe"})

        assert derived == {"full_name": " Doe"}
        assert len(diagnostics) == 1
        assert diagnostics[0].kind == "dangling_reference"
        assert diagnostics[0].attribute == "full_name"
        assert "first_name" in diagnostics[0].message
        assert "first_name" in caplog.text


class TestCycleDetection:
    """Test the DFS cycle check run before a combo is persisted."""

    def test_acyclic_diamond(self):
        left = combo("left", ["x"])
        right = combo("right", ["x"])
        top = combo("top", ["left", "right"], strategy="LEFT_RIGHT")
        resolver = ComboResolver([plain("x"), left, right])

        resolver.check_acyclic(top)

    def test_self_reference(self):
        loop = combo("loop", ["loop"])
        resolver = ComboResolver([])

        with pytest.raises(CyclicReferenceError) as exc:
            resolver.check_acyclic(loop)
        assert exc.value.path == ["loop", "loop"]
        assert exc.value.attribute == "loop"

    def test_two_step_cycle(self):
        a = combo("a", ["b"])
        b = combo("b", ["a"])
        resolver = ComboResolver([b])

        with pytest.raises(CyclicReferenceError) as exc:
            resolver.check_acyclic(a)
        assert exc.value.path == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc.value)

    def test_candidate_replaces_stored_version(self):
        a = combo("a", ["x"])
        b = combo("b", ["a"])
        resolver = ComboResolver([plain("x"), a, b])

        # Editing a to point at b closes the loop
        edited = combo("a", ["b"])
        with pytest.raises(CyclicReferenceError):
            resolver.check_acyclic(edited)

        # Editing a to point elsewhere is fine
        resolver.check_acyclic(combo("a", ["x"]))

    def test_long_cycle(self):
        chain = [combo("c1", ["c2"]), combo("c2", ["c3"]), combo("c3", ["c4"])]
        resolver = ComboResolver(chain)

        with pytest.raises(CyclicReferenceError) as exc:
            resolver.check_acyclic(combo("c4", ["c1"]))
        assert exc.value.path == ["c4", "c1", "c2", "c3", "c4"]

    def test_build_graph_skips_plain_attributes(self):
        a = combo("a", ["x", "y"])
        resolver = ComboResolver([plain("x"), plain("y"), a])
        assert resolver.build_graph() == {"a-id": ["x-id", "y-id"]}
