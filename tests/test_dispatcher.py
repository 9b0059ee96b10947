"""Tests for statement dispatch: assignment, echo, blocks and ignored kinds."""

from tests.nodes import (
    assign, block, call, concat, echo, lookup, run_program, string, var
)


class TestAssign:
    def test_binds_right_hand_taint(self, catalog):
        run = run_program(catalog, assign("u", lookup("_GET")), assign("s", string("x")))

        assert run.env.to_dict() == {"u": ["Cross site scripting", "SQL injection"], "s": []}

    def test_reassignment_overwrites(self, catalog):
        run = run_program(catalog, assign("u", lookup("_GET")), assign("u", string("x")))

        assert run.env.is_tainted("u") is False

    def test_non_variable_target_degrades(self, catalog):
        statement = {"kind": "assign", "left": lookup("_GET"), "right": string("x")}

        run = run_program(catalog, statement)

        assert run.diagnostics["assign_without_target"] == 1
        assert len(run.env) == 0


class TestEcho:
    def test_direct_entry_point_read_triggers_echo_sink(self, catalog):
        run = run_program(catalog, echo(lookup("_GET", "name")))

        assert run.verdict.vulnerable is True
        assert run.verdict.violated_patterns == ["Cross site scripting"]

    def test_tainted_variable_does_not_trigger_echo(self, catalog):
        run = run_program(catalog, assign("n", lookup("_GET")), echo(var("n")))

        assert run.verdict.vulnerable is False

    def test_entry_point_without_echo_sink(self, catalog):
        run = run_program(catalog, echo(lookup("_POST")))

        assert run.verdict.vulnerable is False

    def test_literal_echo_is_safe(self, catalog):
        run = run_program(catalog, echo(string("Hello World")))

        assert run.verdict.vulnerable is False


class TestOtherStatements:
    def test_bare_call_statement_is_ignored(self, catalog):
        run = run_program(catalog, assign("u", lookup("_GET")), call("mysql_query", var("u")))

        assert run.verdict.vulnerable is False
        assert run.diagnostics["ignored_statement"] == 1

    def test_unknown_statement_is_counted(self, catalog):
        run = run_program(catalog, {"kind": "return", "expr": None}, assign("a", string("x")))

        assert run.diagnostics["unknown_statement"] == 1
        assert run.env.to_dict() == {"a": []}

    def test_block_dispatches_children_in_order(self, catalog):
        run = run_program(
            catalog,
            block(
                assign("u", lookup("_GET")),
                assign("q", concat(string("SELECT "), var("u"))),
                assign("r", call("mysql_query", var("q"))),
            ),
        )

        assert run.verdict.vulnerable is True
