"""CLI tests: argument handling, exit codes, and the REPL loop."""

import io
import sys

from olox.cli import main


def write_script(tmp_path, text: str):
    path = tmp_path / "script.olox"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_too_many_arguments_prints_usage(capsys):
    assert main(["a.olox", "b.olox"]) == 64
    assert capsys.readouterr().out == "Usage: olox [script]\n"


def test_runs_script(tmp_path, capsys):
    path = write_script(tmp_path, 'var who = "world";\nprint "hello " + who;\n')
    assert main([path]) == 0
    assert capsys.readouterr().out == "hello world\n"


def test_script_with_build_error(tmp_path, capsys):
    path = write_script(tmp_path, "print 1;\nprint ;\n")
    assert main([path]) == 65
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == "[line 2] Error at ';': Expected expression.\n"


def test_script_with_runtime_error(tmp_path, capsys):
    path = write_script(tmp_path, "print 1;\nprint -nil;\n")
    assert main([path]) == 70
    captured = capsys.readouterr()
    assert captured.out == "1\n"
    assert captured.err == "Operand must be a number.\n[line 2]\n"


def test_missing_script(tmp_path, capsys):
    path = str(tmp_path / "missing.olox")
    assert main([path]) == 66
    assert "No such file or directory" in capsys.readouterr().err


def test_invalid_utf8_script(tmp_path, capsys):
    path = tmp_path / "bad.olox"
    path.write_bytes(b"print \xff;")
    assert main([str(path)]) == 65
    assert "invalid utf-8" in capsys.readouterr().err


def test_utf8_source(tmp_path, capsys):
    path = write_script(tmp_path, 'print "héllo";\n')
    assert main([path]) == 0
    assert capsys.readouterr().out == "héllo\n"


def test_repl_session(monkeypatch, capsys):
    lines = "var a = 1\nprint a\nprint a + nil\nprint a + 1\n"
    monkeypatch.setattr(sys, "stdin", io.StringIO(lines))
    assert main([]) == 0
    captured = capsys.readouterr()
    assert captured.out == ">> a = 1\n>> 1\n>> >> 2\n>> "
    assert captured.err == "Operands must be two numbers or two strings.\n[line 1]\n"


def test_repl_recovers_from_build_errors(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO("print ;\n3 * 4\n"))
    assert main([]) == 0
    captured = capsys.readouterr()
    assert captured.out == ">> >> 12\n>> "
    assert "Expected expression." in captured.err


def test_repl_ends_on_eof(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO(""))
    assert main([]) == 0
    assert capsys.readouterr().out == ">> "
