# type: ignore
import os

from invoke import task


@task
def venv(ctx):
    """Create .venv and install pveqemu with test and dev extras."""
    ctx.run("uv sync --extra test --extra dev")


@task
def clean(ctx):
    """Remove build artifacts and caches."""
    ctx.run(
        "rm -rf dist build .pytest_cache .mypy_cache .ruff_cache .coverage htmlcov"
    )
    ctx.run("find . -name __pycache__ -type d -prune -exec rm -rf {} +")


@task
def lint(ctx):
    """Run ruff and mypy over sources and tests."""
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def format(ctx):
    ctx.run("ruff format src tests", pty=True)
    ctx.run("ruff check --fix src tests", pty=True)


@task
def test(ctx, html=False):
    """Run tests with coverage information."""
    report = "html" if html else "term-missing"
    ctx.run(f"pytest --cov=pveqemu --cov-report={report}", pty=True)


@task
def build_package(ctx):
    ctx.run("rm -rf dist")
    ctx.run("uv build")


@task(pre=[lint, test])
def release(ctx):
    """Lint, test, build and publish to PyPI."""
    token = os.getenv("PYPI_TOKEN")
    if not token:
        raise ValueError("PYPI_TOKEN environment variable is not set")

    build_package(ctx)
    ctx.run(f"uv publish --token {token}")
