"""Top-level package for the streaming text exercises.

Provides subpackages:
- streaming_toolkit.core – data models and content schemas
- streaming_toolkit.engine – the frame-driven streaming simulation engine
- streaming_toolkit.exercises – fluent reading, speed reading and bubble pop
- streaming_toolkit.utils – logging helpers
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text()
        except OSError:
            content = ""
        for line in content.splitlines():
            if line.strip().startswith("version"):
                # Parse: version = "0.1.0"
                return line.split("=")[1].strip().strip('"').strip("'")

    # Fallback to importlib.metadata for installed package
    from importlib.metadata import PackageNotFoundError, version as pkg_version
    try:
        return pkg_version("streaming-toolkit")
    except PackageNotFoundError:
        return "0.0.0"

__version__ = _get_version()
__copyright__ = "Copyright 2026 Timothy Carpenter Licensed under the Polyform Noncommercial License 1.0.0"
__all__: list[str] = ["__version__"]
