"""CLI tests for the swiftkt entry point.

Test cases live in 01_cli/*.tests files. Format:

    === test name
    args: --strict --indent 2
    let x = 1
    (stdin for the translator)
    ---
    exit: 0
    stderr: error: some message
    stdout-contains: val x
    stdout-line:   println(1)
    stdout-empty: true
    stderr-empty: true
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion directives in the expected section:
    exit:             exact exit code
    exit-not:         exit code must NOT equal this
    stderr:           exact stderr content (trailing newline added)
    stderr-contains:  stderr must contain substring
    stderr-empty:     stderr must be empty
    stdout-contains:  stdout must contain substring
    stdout-line:      stdout must contain this exact line, leading spaces kept
    stdout-empty:     stdout must be empty
"""

import subprocess
import sys
from pathlib import Path

import pytest

CLI_DIR = Path(__file__).parent / "01_cli"
REPO_DIR = Path(__file__).parent.parent

# directive -> how its value is read
DIRECTIVES: dict[str, str] = {
    "exit": "int",
    "exit-not": "int",
    "stderr": "text",
    "stderr-contains": "text",
    "stderr-empty": "flag",
    "stdout-contains": "text",
    "stdout-line": "raw",
    "stdout-empty": "flag",
}


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
    i = 0
    while i < len(lines):
        if not lines[i].startswith("=== "):
            i += 1
            continue
        name = lines[i][4:].strip()
        i += 1
        sections: list[list[str]] = []
        for _ in range(2):
            section: list[str] = []
            while i < len(lines) and lines[i] != "---":
                section.append(lines[i])
                i += 1
            i += 1
            sections.append(section)
        result.append((name, _parse_spec(sections[0], sections[1])))
    return result


def _parse_assertion(line: str) -> tuple[str, object] | None:
    if ":" not in line:
        return None
    key, _, rest = line.partition(":")
    mode = DIRECTIVES.get(key.strip())
    if mode is None:
        return None
    if mode == "int":
        return (key, int(rest.strip()))
    if mode == "flag":
        return (key, None)
    if mode == "raw":
        return (key, rest[1:] if rest.startswith(" ") else rest)
    return (key, rest.strip())


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    """Parse input + expected lines into a test spec dict."""
    spec: dict = {"args": [], "stdin": b"", "assertions": []}
    body = input_lines
    if body and body[0].startswith("args:"):
        spec["args"] = body[0][5:].split()
        body = body[1:]
    if body and body[0].startswith("stdin-bytes:"):
        spec["stdin"] = bytes.fromhex(body[0][len("stdin-bytes:") :].strip())
    else:
        spec["stdin"] = "\n".join(body).encode()
    for line in expected_lines:
        if not line.strip():
            continue
        assertion = _parse_assertion(line)
        if assertion is None:
            raise ValueError("unknown directive: " + line)
        spec["assertions"].append(assertion)
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    """Find all CLI tests across .tests files."""
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, spec in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def run_cli(args: list[str], stdin: bytes) -> subprocess.CompletedProcess[bytes]:
    """Run the swiftkt CLI as a subprocess from the repository root."""
    return subprocess.run(
        [sys.executable, "-m", "swiftkt", *args],
        input=stdin,
        capture_output=True,
        cwd=REPO_DIR,
    )


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    """Check all assertions against a CLI result."""
    stdout = result.stdout.decode(errors="replace")
    stderr = result.stderr.decode(errors="replace")
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}\nstderr: {stderr}"
            )
        elif kind == "exit-not":
            assert result.returncode != value, (
                f"expected exit != {value}, got {result.returncode}"
            )
        elif kind == "stderr":
            assert stderr.rstrip("\n") == value, (
                f"expected stderr {value!r}, got {stderr!r}"
            )
        elif kind == "stderr-contains":
            assert value in stderr, f"expected stderr to contain {value!r}, got {stderr!r}"
        elif kind == "stderr-empty":
            assert stderr == "", f"expected empty stderr, got {stderr!r}"
        elif kind == "stdout-contains":
            assert value in stdout, f"expected stdout to contain {value!r}, got {stdout!r}"
        elif kind == "stdout-line":
            assert value in stdout.split("\n"), (
                f"expected stdout line {value!r}, got {stdout!r}"
            )
        elif kind == "stdout-empty":
            assert stdout == "", f"expected empty stdout, got {stdout[:200]!r}"


def pytest_generate_tests(metafunc):
    """Parametrize test_cli over all .tests files."""
    if "cli_spec" in metafunc.fixturenames:
        params = [pytest.param(spec, id=test_id) for test_id, spec in discover_cli_tests()]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict) -> None:
    """Run a single CLI test case from .tests file."""
    result = run_cli(cli_spec["args"], cli_spec["stdin"])
    check_assertions(result, cli_spec["assertions"])


def test_reads_input_file_and_writes_output_file(tmp_path: Path) -> None:
    src = tmp_path / "main.swift"
    out = tmp_path / "main.kt"
    src.write_text('let greeting = "hi"\nprint(greeting)\n')
    result = run_cli([str(src), "-o", str(out)], b"")
    assert result.returncode == 0
    assert result.stdout == b""
    assert out.read_text() == 'val greeting = "hi"\nprintln(greeting)\n'


def test_unwritable_output_file(tmp_path: Path) -> None:
    target = tmp_path / "missing" / "out.kt"
    result = run_cli(["-o", str(target)], b"let x = 1\n")
    assert result.returncode == 1
    assert result.stderr.decode().startswith("error: cannot write")
