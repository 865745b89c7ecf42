"""Translation tests: Swift in, Kotlin text and diagnostic kinds out.

Test cases live in 04_translate/*.tests files. Format:

    === test name
    let p: Point = make()
    ---
    val p: Point = make()
    diag: AssumedIdentityMapping
    ---

Trailing 'diag: <Kind>' lines list the expected diagnostic kinds in
traversal order; every other line of the expected section is output text.
"""

from pathlib import Path

import pytest

from swiftkt import translate

TRANSLATE_DIR = Path(__file__).parent / "04_translate"


def parse_translate_test_file(path: Path) -> list[tuple[str, str, str, list[str]]]:
    """Parse a .tests file into (name, swift, kotlin, kinds) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str, list[str]]] = []
    i = 0
    while i < len(lines):
        if not lines[i].startswith("=== "):
            i += 1
            continue
        name = lines[i][4:].strip()
        i += 1
        source: list[str] = []
        while i < len(lines) and lines[i] != "---":
            source.append(lines[i])
            i += 1
        i += 1
        expected: list[str] = []
        while i < len(lines) and lines[i] != "---":
            expected.append(lines[i])
            i += 1
        i += 1
        kinds: list[str] = []
        while expected and expected[-1].startswith("diag: "):
            kinds.insert(0, expected.pop()[6:].strip())
        result.append((name, "\n".join(source) + "\n", "\n".join(expected).strip("\n"), kinds))
    return result


def discover_translate_tests() -> list[tuple[str, str, str, list[str]]]:
    results = []
    for test_file in sorted(TRANSLATE_DIR.glob("*.tests")):
        for name, source, kotlin, kinds in parse_translate_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", source, kotlin, kinds))
    return results


def pytest_generate_tests(metafunc):
    """Parametrize test_translate over all .tests files."""
    if "swift_source" in metafunc.fixturenames:
        params = [
            pytest.param(source, kotlin, kinds, id=test_id)
            for test_id, source, kotlin, kinds in discover_translate_tests()
        ]
        metafunc.parametrize("swift_source,kotlin_expected,kinds_expected", params)


def test_translate(swift_source: str, kotlin_expected: str, kinds_expected: list[str]):
    result = translate(swift_source)
    assert result.text.rstrip("\n") == kotlin_expected
    assert [d.kind for d in result.diagnostics] == kinds_expected
