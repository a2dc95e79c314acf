"""Top-level package for the content tree engine.

Provides subpackages:
- content_tree.core – node models, lock arbitration, integrity validation
- content_tree.engine – completion scheduler, relative addressing, tracking positions
- content_tree.store – the flat, id-indexed node store
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text()
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.3.1"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    # Fallback to importlib.metadata for installed package
    from importlib.metadata import PackageNotFoundError, version as pkg_version
    try:
        return pkg_version("content_tree")
    except PackageNotFoundError:
        return "0.0.0"

__version__ = _get_version()

from .config import DEFAULT_CONFIG, EngineConfig
from .core.models import ContentNode, LockingModel, LockLedger
from .core.schemas import IntegrityError, ValidationError
from .engine import CompletionScheduler, RelativePathError
from .store import Store

__all__: list[str] = [
    "__version__",
    "DEFAULT_CONFIG",
    "EngineConfig",
    "ContentNode",
    "LockingModel",
    "LockLedger",
    "IntegrityError",
    "ValidationError",
    "CompletionScheduler",
    "RelativePathError",
    "Store",
]
