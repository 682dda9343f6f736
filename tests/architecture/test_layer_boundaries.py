"""
Import-boundary enforcement for the lending analytics packages.

1. Kernel independence: lending_kernel/** may not import the engines,
                          services or config layers.
2. Domain purity      : lending_kernel/domain/** imports only the standard
                          library, other domain modules and exceptions.
3. Engine purity      : lending_engines/** may not import DB drivers, ORM,
                          models, kernel services, selectors or config.
4. Engine no-impure   : lending_engines/** may not read the wall clock or
                          the environment.
5. Config entry point : lending_services/** may only use lending_config's
                          schema types, never its loader.

All scanning is done via AST.
"""

import ast
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _parse(filepath: Path) -> ast.AST | None:
    try:
        return ast.parse(filepath.read_text(), filename=str(filepath))
    except (SyntaxError, UnicodeDecodeError):
        return None


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every absolute import in *filepath*."""
    tree = _parse(filepath)
    if tree is None:
        return []
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module and node.level == 0:
                results.append((node.lineno, node.module))
    return results


def _extract_attribute_calls(filepath: Path) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    tree = _parse(filepath)
    if tree is None:
        return []
    return [
        (node.lineno, f"{node.value.id}.{node.attr}")
        for node in ast.walk(tree)
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name)
    ]


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    return [
        f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'"
        for path in _python_files(package)
        for lineno, module in _extract_imports(path)
        if _matches_any(module, forbidden)
    ]


class TestKernelIndependence:
    FORBIDDEN_PREFIXES = ("lending_engines", "lending_services", "lending_config")

    def test_kernel_has_no_upward_imports(self):
        violations = _violations("lending_kernel", self.FORBIDDEN_PREFIXES)

        assert not violations, (
            "lending_kernel/** must not depend on engines, services or config:\n"
            + "\n".join(violations)
        )


class TestDomainPurity:
    ALLOWED_PREFIXES = ("lending_kernel.domain", "lending_kernel.exceptions")

    def test_domain_imports_only_stdlib_and_domain(self):
        violations: list[str] = []
        for path in _python_files("lending_kernel/domain"):
            for lineno, module in _extract_imports(path):
                top = module.split(".")[0]
                if top in sys.stdlib_module_names or top == "__future__":
                    continue
                if _matches_any(module, self.ALLOWED_PREFIXES):
                    continue
                violations.append(f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'")

        assert not violations, "Domain purity violation:\n" + "\n".join(violations)


class TestEnginePurity:
    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "lending_kernel.models",
        "lending_kernel.db.base",
        "lending_kernel.db.engine",
        "lending_kernel.db.upsert",
        "lending_kernel.services",
        "lending_kernel.selectors",
        "lending_services",
        "lending_config",
    )

    def test_engine_files_have_no_forbidden_imports(self):
        violations = _violations("lending_engines", self.FORBIDDEN_PREFIXES)

        assert not violations, (
            "Engine purity violation: lending_engines/** must stay free of "
            "persistence and configuration:\n" + "\n".join(violations)
        )


class TestEngineNoImpureFunctions:
    FORBIDDEN_CALLS = frozenset({
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "os.environ",
        "os.getenv",
    })

    def test_engines_do_not_read_clock_or_environment(self):
        violations = [
            f"  {path.relative_to(ROOT)}:{lineno} uses '{call}'"
            for path in _python_files("lending_engines")
            for lineno, call in _extract_attribute_calls(path)
            if call in self.FORBIDDEN_CALLS
        ]

        assert not violations, "Impure call in engine:\n" + "\n".join(violations)


class TestConfigEntryPoint:
    FORBIDDEN_PREFIXES = ("lending_config.loader", "lending_config.bridges")

    def test_services_use_schema_types_only(self):
        violations = _violations("lending_services", self.FORBIDDEN_PREFIXES)

        assert not violations, (
            "lending_services/** may import lending_config.schema only:\n"
            + "\n".join(violations)
        )
