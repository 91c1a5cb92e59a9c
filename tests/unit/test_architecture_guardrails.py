from __future__ import annotations

# ==============================
# Tests: Architecture Guardrails
# ==============================

import ast
from pathlib import Path
from typing import Iterable, List, Tuple

REPO_ROOT = Path(__file__).resolve().parents[2]

# The per-message path must not depend on registry state or the admin surface.
HOT_PATH_FILES = ("core/tracing/topic.py", "core/tracing/filters.py", "core/tracing/classifier.py")
HOT_PATH_FORBIDDEN = ("core.tracing.registry", "core.tracing.sinks", "gateway")


def _imports(path: Path) -> Iterable[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield alias.name
        elif isinstance(node, ast.ImportFrom) and node.module:
            yield node.module


def _offenders(paths: Iterable[Path], forbidden: Tuple[str, ...]) -> List[Tuple[str, str]]:
    found: List[Tuple[str, str]] = []
    for path in paths:
        for module in _imports(path):
            if any(module == p or module.startswith(p + ".") for p in forbidden):
                found.append((str(path.relative_to(REPO_ROOT)), module))
    return found


def test_core_does_not_import_gateway() -> None:
    offenders = _offenders((REPO_ROOT / "core").rglob("*.py"), ("gateway",))
    assert not offenders, f"core/ must not import gateway/: {offenders}"


def test_hot_path_is_independent_of_registry() -> None:
    offenders = _offenders((REPO_ROOT / f for f in HOT_PATH_FILES), HOT_PATH_FORBIDDEN)
    assert not offenders, f"Hot path imports forbidden modules: {offenders}"


def test_only_loader_reads_environment() -> None:
    offenders = []
    for path in (REPO_ROOT / "core").rglob("*.py"):
        if path.name == "loader.py":
            continue
        if "os.environ" in path.read_text(encoding="utf-8"):
            offenders.append(str(path.relative_to(REPO_ROOT)))
    assert not offenders, f"Only core/config/loader.py may read os.environ: {offenders}"
