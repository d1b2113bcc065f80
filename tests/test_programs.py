"""End-to-end runner for Olox programs in tests/programs/*.tests."""

from pathlib import Path

import pytest

from olox import run

TESTS_DIR = Path(__file__).parent / "programs"


# ---------------------------------------------------------------------------
# Program file parsing
# ---------------------------------------------------------------------------


def parse_tests_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, source, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            source = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, source, expected))
        else:
            i += 1
    return result


def discover_programs(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, source, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, source, expected in parse_tests_file(test_file):
            results.append((f"{test_file.stem}/{name}", source, expected))
    return results


# ---------------------------------------------------------------------------
# Expectations
# ---------------------------------------------------------------------------


def check_expected(expected: str, exit_code: int, stdout: str, stderr: str) -> None:
    if expected.startswith("runtime error:"):
        expected_msg = expected[len("runtime error:") :].strip()
        if exit_code != 70:
            pytest.fail(f"Expected runtime error, got exit {exit_code}:\n{stderr}")
        if expected_msg not in stderr:
            pytest.fail(
                f"Expected runtime error '{expected_msg}', got:\n{stderr}"
            )
        return
    if expected.startswith("error:"):
        expected_msg = expected[len("error:") :].strip()
        if exit_code != 65:
            pytest.fail(f"Expected build error, got exit {exit_code}:\n{stdout}")
        if stdout != "":
            pytest.fail(f"Build error must not run anything, got output:\n{stdout}")
        if expected_msg not in stderr:
            pytest.fail(f"Expected error '{expected_msg}', got:\n{stderr}")
        return
    if exit_code != 0:
        pytest.fail(f"Exit code {exit_code}:\n{stderr}")
    actual = stdout.strip()
    if actual != expected:
        pytest.fail(
            f"Output mismatch\n--- expected ---\n{expected}\n--- got ---\n{actual}"
        )


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    if "program_source" in metafunc.fixturenames:
        programs = discover_programs(TESTS_DIR)
        params = [pytest.param(src, exp, id=tid) for tid, src, exp in programs]
        metafunc.parametrize("program_source,program_expected", params)


def test_program(program_source: str, program_expected: str):
    result = run(program_source)
    check_expected(program_expected, result.exit_code, result.stdout, result.stderr)
