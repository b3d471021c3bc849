"""DevOps tasks for devstrap.

Usage: uv run devops.py <task>
Tasks: fmt, lint, test, smoke, clean
"""

import subprocess
import sys


def _run(commands: list[list[str]]) -> None:
    """Execute a sequence of shell commands, exiting on first failure."""
    for cmd in commands:
        try:
            subprocess.run(cmd, check=True)  # nosec: B603, B607
        except subprocess.CalledProcessError as e:
            print(f"Command failed: {' '.join(e.cmd)}", file=sys.stderr)
            sys.exit(e.returncode)


def format_code() -> None:
    """Format the codebase with Ruff."""
    _run(
        [
            ["echo", "🎨 [Native Task] Formatting with Ruff...\n"],
            ["ruff", "format", "app", "tests"],
            ["ruff", "check", "--fix", "app", "tests"],
            ["echo", "\n🟢 Formatted → ✅ Code clean."],
        ]
    )


def lint() -> None:
    """Check formatting and lint rules without changing files."""
    _run(
        [
            ["echo", "🔍 [Native Task] Linting with Ruff...\n"],
            ["ruff", "format", "--check", "app", "tests"],
            ["ruff", "check", "app", "tests"],
            ["echo", "\n🟢 Lint → ✅ No findings"],
        ]
    )


def test() -> None:
    """Run the unit tests with PyTest."""
    _run(
        [
            ["echo", "🧪 [Native Task] Testing with PyTest...\n"],
            ["uv", "run", "pytest", "-q"],
            ["echo", "\n🟢 Tests → ✅ Passed"],
        ]
    )


def smoke() -> None:
    """Preview a local bootstrap without changing the machine."""
    _run(
        [
            ["echo", "🔭 [Native Task] Dry-run bootstrap of this machine...\n"],
            ["uv", "run", "devstrap", "detect"],
            ["uv", "run", "devstrap", "apply", "--dry-run", "-y"],
            ["echo", "\n🟢 Dry run → ✅ Nothing was changed"],
        ]
    )


def clean() -> None:
    """Remove caches and build artifacts."""
    _run(
        [
            ["echo", "🧹 [Native Task] Cleaning the Project...\n"],
            ["find", ".", "-type", "d", "-name", "__pycache__", "-exec", "rm", "-rf", "{}", "+"],
            ["find", ".", "-type", "f", "-name", "*.pyc", "-delete"],
            ["rm", "-rf", ".pytest_cache", ".ruff_cache", "dist", "build"],
            ["find", ".", "-type", "d", "-name", "*.egg-info", "-exec", "rm", "-rf", "{}", "+"],
            ["echo", "\n🟢 Caches & Artifacts → ✅ All fresh now"],
        ]
    )


TASKS = {
    "fmt": format_code,
    "lint": lint,
    "test": test,
    "smoke": smoke,
    "clean": clean,
}


if __name__ == "__main__":
    if len(sys.argv) != 2 or sys.argv[1] not in TASKS:
        print(__doc__, file=sys.stderr)
        sys.exit(2)
    TASKS[sys.argv[1]]()
