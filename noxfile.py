"""
Nox configuration for formatting, type checking and testing.
"""

import os
import nox

PYTHON_ALL_VERSIONS = ["3.10", "3.11", "3.12", "3.13"]
PYTHON_MODULES = ["pdfcontent", "tools", "tests", "noxfile.py"]


@nox.session(reuse_venv=True)
def format(session):
    """Run Ruff for linting & formatting."""
    session.install("ruff")

    if os.getenv("CI"):
        # CI: check only, no auto-fix
        session.run("ruff", "check", *PYTHON_MODULES)
        session.run("ruff", "format", "--check", *PYTHON_MODULES)
    else:
        session.run("ruff", "check", "--fix", *PYTHON_MODULES)
        session.run("ruff", "format", *PYTHON_MODULES)


@nox.session(reuse_venv=True)
def types(session):
    """Run static type checking."""
    session.install("mypy", "types-Pillow")
    session.run(
        "mypy",
        "--show-error-codes",
        "pdfcontent",
    )


@nox.session(python=PYTHON_ALL_VERSIONS)
def tests(session):
    """Run the test suite, with and without Pillow."""
    session.install("pip>=21")
    session.install("-e", ".[dev]")
    session.run("pytest")
    session.install("Pillow")
    session.run("pytest", "tests/test_image.py")
