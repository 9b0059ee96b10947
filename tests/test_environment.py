"""Tests for the taint environment, verdict and run-scoped pattern set."""

import pytest

from analyzers.environment import (
    ActivePatternSet, AnalysisOptions, AnalysisRun, BlockStrategy,
    Diagnostics, GuardedLiteral, NarrowingMode, TaintEnvironment, Verdict
)
from core.config import Config


SQL = "SQL injection"
XSS = "Cross site scripting"


class TestTaintEnvironment:
    def test_absent_variable_is_untainted_and_registered(self):
        env = TaintEnvironment()

        assert env.is_tainted("x") is False
        assert env.taint_of("x") == frozenset()
        assert "x" in env

    def test_declare_keeps_existing_value(self):
        env = TaintEnvironment({"x": {SQL}})

        env.declare("x")

        assert env.taint_of("x") == {SQL}

    def test_sanitize_is_idempotent(self):
        env = TaintEnvironment({"x": {SQL, XSS}})

        env.sanitize("x")
        env.sanitize("x")

        assert env.is_tainted("x") is False

    def test_copy_is_independent(self):
        env = TaintEnvironment({"x": set()})
        clone = env.copy()

        clone.set("x", {SQL})

        assert env.is_tainted("x") is False
        assert env != clone

    def test_join_is_union_per_variable(self):
        then_env = TaintEnvironment({"a": {SQL}, "b": set(), "only_then": set()})
        else_env = TaintEnvironment({"a": {XSS}, "b": {XSS}, "only_else": {SQL}})

        merged = then_env.join(else_env)

        assert merged.to_dict() == {
            "a": [XSS, SQL],
            "b": [XSS],
            "only_then": [],
            "only_else": [SQL],
        }

    def test_tainted_names(self):
        env = TaintEnvironment({"a": {SQL}, "b": set(), "c": {XSS}})

        assert env.tainted_names() == {"a", "c"}

    def test_weight_counts_variable_pattern_pairs(self):
        env = TaintEnvironment({"a": {SQL, XSS}, "b": set(), "c": {XSS}})

        assert env.weight() == 3


class TestVerdict:
    def test_starts_safe(self):
        assert Verdict().vulnerable is False

    def test_cannot_be_reset(self):
        verdict = Verdict()
        verdict.mark_vulnerable("SQL injection")

        with pytest.raises(AttributeError):
            verdict.vulnerable = False
        assert verdict.vulnerable is True

    def test_duplicates_are_kept(self):
        verdict = Verdict()

        verdict.mark_vulnerable("SQL injection")
        verdict.mark_vulnerable("SQL injection")

        assert verdict.violated_patterns == ["SQL injection", "SQL injection"]
        assert verdict.to_dict()["vulnerable"] is True


class TestActivePatternSet:
    def test_scoped_mode_never_narrows(self, catalog):
        active = ActivePatternSet(catalog, NarrowingMode.SCOPED)

        active.entry_point("$_GET")

        assert active.active == catalog.patterns

    def test_legacy_mode_narrows_for_the_run_only(self, catalog, sql_pattern, xss_pattern):
        active = ActivePatternSet(catalog, NarrowingMode.LEGACY)

        assert active.entry_point("$_GET") == (sql_pattern, xss_pattern)
        assert active.active == (sql_pattern, xss_pattern)
        assert active.entry_point("$_POST") == (sql_pattern,)
        assert len(catalog) == 3

    def test_names_follow_narrowing(self, catalog):
        active = ActivePatternSet(catalog, NarrowingMode.LEGACY)

        active.entry_point("$_POST")

        assert active.names() == {"SQL injection", "Command injection"}


class TestAnalysisRun:
    def test_guards_nest_and_restore(self, catalog):
        run = AnalysisRun.start(catalog)

        with run.guarded(GuardedLiteral("outer")):
            with run.guarded(GuardedLiteral("inner")):
                assert run.guard.value == "inner"
            with run.guarded(None):
                assert run.guard.value == "outer"
            assert run.guard.value == "outer"
        assert run.guard is None

    def test_finish_copies_diagnostics(self, catalog):
        run = AnalysisRun.start(catalog)
        run.diagnostics.record("unknown_statement")

        verdict = run.finish()

        assert verdict.diagnostics == {"unknown_statement": 1}

    def test_diagnostics_merge(self):
        diagnostics = Diagnostics()
        diagnostics.merge({"missing_right": 2}, prefix="ast_")

        assert diagnostics["ast_missing_right"] == 2
        assert diagnostics.total() == 2


class TestAnalysisOptions:
    def test_defaults(self):
        options = AnalysisOptions()

        assert options.block_strategy is BlockStrategy.FIRST
        assert options.narrowing is NarrowingMode.SCOPED
        assert options.passthrough_functions == ("substr",)

    def test_from_config(self):
        config = Config.from_dict({
            "analysis": {"block_strategy": "all", "pattern_narrowing": "legacy", "echo_sink": "print"}
        })

        options = AnalysisOptions.from_config(config)

        assert options.block_strategy is BlockStrategy.ALL
        assert options.narrowing is NarrowingMode.LEGACY
        assert options.echo_sink == "print"
        assert options.entry_point_prefix == "$"
