"""Interpreter tests: whole-program scenarios, value rules, and REPL echo."""

import sys

import pytest

from olox import RunMode, execute, run
from olox.runtime import (
    FALSE,
    NIL,
    TRUE,
    VNumber,
    VString,
    is_truthy,
)


@pytest.mark.parametrize(
    "source,expected",
    [
        ("print 1 + 2 * 3;", "7\n"),
        ("var a = 1; { var a = 2; print a; } print a;", "2\n1\n"),
        ('class A { hello() { print "hi"; } } A().hello();', "hi\n"),
        (
            "class A { init(x) { this.x = x; } } "
            "class B < A { init(x) { super.init(x); this.y = x + 1; } } "
            "var b = B(10); print b.x; print b.y;",
            "10\n11\n",
        ),
        (
            "fun make(n) { fun inc() { n = n + 1; return n; } return inc; } "
            "var c = make(0); print c(); print c(); print c();",
            "1\n2\n3\n",
        ),
        (
            "for (var i = 0; i < 3; i = i + 1) { if (i == 2) break; print i; }",
            "0\n1\n",
        ),
        ('print "a" + 1;', "a1\n"),
    ],
)
def test_scenarios(source, expected):
    result = run(source)
    assert result.exit_code == 0, result.stderr
    assert result.stdout == expected
    assert result.stderr == ""


def test_division_by_zero_is_a_runtime_error():
    result = run("print 1 / 0;")
    assert result.exit_code == 70
    assert result.stdout == ""
    assert result.stderr == "Arithmetic Error: Division by Zero\n[line 1]\n"


def test_runtime_error_reports_line_of_operator():
    result = run('var a = 1;\n\nprint a +\n  nil;')
    assert result.exit_code == 70
    assert result.stderr == "Operands must be two numbers or two strings.\n[line 3]\n"


def test_build_error_exit_code_and_nothing_runs():
    result = run("print 1;\nprint ;")
    assert result.exit_code == 65
    assert result.stdout == ""
    assert result.stderr == "[line 2] Error at ';': Expected expression.\n"


def test_resolver_error_skips_execution():
    result = run("print 1;\nreturn;")
    assert result.exit_code == 65
    assert result.stdout == ""


def test_warnings_do_not_fail_the_run():
    result = run("{ var unused = 1; }\nprint 2;")
    assert result.exit_code == 0
    assert result.stdout == "2\n"
    assert "Warning at 'unused'" in result.stderr


@pytest.mark.parametrize("n", [0, 1, 5])
def test_for_loop_counts_up_to_n(n):
    result = run("for (var i = 0; i < " + str(n) + "; i = i + 1) print i;")
    assert result.stdout.split() == [str(i) for i in range(n)]


# ── Values ───────────────────────────────────────────────────


def test_truthiness():
    assert not is_truthy(NIL)
    assert not is_truthy(FALSE)
    assert is_truthy(TRUE)
    assert is_truthy(VNumber(0.0))
    assert is_truthy(VString(""))


@pytest.mark.parametrize(
    "value,text",
    [
        (3.0, "3"),
        (2.5, "2.5"),
        (-7.0, "-7"),
        (0.1, "0.1"),
        (0.0, "0"),
        (-0.0, "-0"),
        (1e16, "10000000000000000"),
        (1e21, "1000000000000000000000"),
        (1.5e-7, "1.5e-07"),
        (float("inf"), "inf"),
    ],
)
def test_number_stringification(value, text):
    assert VNumber(value).to_string() == text


def test_instances_compare_by_identity():
    result = run("class A {} var a = A(); var b = A(); print a == a; print a == b;")
    assert result.stdout == "true\nfalse\n"


def test_functions_compare_by_identity():
    result = run("fun f() {} var g = f; print f == g; print f == fun () {};")
    assert result.stdout == "true\nfalse\n"


def test_bound_methods_are_fresh_each_access():
    result = run("class A { m() {} } var a = A(); print a.m == a.m;")
    assert result.stdout == "false\n"


def test_getter_returns_value_not_function():
    result = run("class A { g { return 42; } } print A().g;")
    assert result.stdout == "42\n"


def test_initializer_identity():
    result = run(
        "class C { init(x) { this.x = x; } } var o = C(1); "
        "print o.init(2) == o; print o.x;"
    )
    assert result.stdout == "true\n2\n"


def test_closures_over_one_frame_share_state():
    source = """
var set;
var get;
fun pair() {
  var value = "before";
  fun s(v) { value = v; }
  fun g() { return value; }
  set = s;
  get = g;
}
pair();
set("after");
print get();
"""
    assert run(source).stdout == "after\n"


def test_class_method_inherited_through_metaclass():
    source = """
class A { class create() { return this(); } }
class B < A {}
print B.create();
"""
    assert run(source).stdout == "B instance\n"


# ── Interpreter state ────────────────────────────────────────


def test_environment_restored_after_runtime_error(repl_pipeline):
    interp = repl_pipeline.interpreter
    execute("{ var a = 1; print a + nil; }", interp, repl_pipeline.reporter, RunMode.REPL)
    assert repl_pipeline.reporter.had_runtime_error
    assert interp.environment is None


def test_environment_restored_after_return_and_break(pipeline):
    interp = pipeline.interpreter
    execute(
        "fun f() { { return 1; } } f(); while (true) { { break; } }",
        interp,
        pipeline.reporter,
    )
    assert not pipeline.reporter.had_runtime_error
    assert interp.environment is None


def test_globals_persist_across_executions(repl_pipeline):
    interp = repl_pipeline.interpreter
    reporter = repl_pipeline.reporter
    execute("var a = 1;", interp, reporter, RunMode.REPL)
    execute("fun f() { return a + 1; }", interp, reporter, RunMode.REPL)
    execute("print f();", interp, reporter, RunMode.REPL)
    assert repl_pipeline.stdout == "a = 1\n2\n"


# ── REPL echo ────────────────────────────────────────────────


@pytest.mark.parametrize(
    "source,expected",
    [
        ("var x = 1 + 2;", "x = 3\n"),
        ("var x;", ""),
        ("1 + 1", "2\n"),
        ("nil;", ""),
        ('"s"', "s\n"),
        ("print 1;", "1\n"),
        ("{ 1; var y = 2; }", ""),
        ("fun f() { return 2; } f()", "2\n"),
        ("var x = 1; x = 5", "x = 1\n5\n"),
    ],
)
def test_repl_echo(source, expected):
    result = run(source, RunMode.REPL)
    assert result.exit_code == 0, result.stderr
    assert result.stdout == expected


def test_file_mode_does_not_echo():
    assert run("var x = 1; x;").stdout == ""


# ── Deep programs ────────────────────────────────────────────


def test_recursion_a_thousand_calls_deep():
    source = (
        "fun count(n) { if (n == 0) return 0; return 1 + count(n - 1); } "
        "print count(1000);"
    )
    result = run(source)
    assert result.exit_code == 0, result.stderr
    assert result.stdout == "1000\n"


def test_host_recursion_limit_is_restored():
    before = sys.getrecursionlimit()
    run("fun f(n) { if (n > 0) f(n - 1); } f(10);")
    assert sys.getrecursionlimit() == before


def test_deeply_nested_grouping_runs():
    result = run("print " + "(" * 400 + "1" + ")" * 400 + ";")
    assert result.exit_code == 0, result.stderr
    assert result.stdout == "1\n"


def test_runaway_nesting_is_a_build_error():
    result = run("print " + "(" * 20000 + "1" + ")" * 20000 + ";\nprint 2;")
    assert result.exit_code == 65
    assert result.stdout == ""
    assert "Error at '(': Too much nesting." in result.stderr


def test_deeply_nested_block_comment():
    result = run("/*" * 2000 + "*/" * 2000 + " print 1;")
    assert result.exit_code == 0, result.stderr
    assert result.stdout == "1\n"
