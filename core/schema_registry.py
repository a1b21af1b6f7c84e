# core/schema_registry.py
from __future__ import annotations
from typing import Callable, List, Tuple
from sqlalchemy.engine import Engine
import importlib
import logging
import pkgutil
from pathlib import Path

logger = logging.getLogger(__name__)

# Schema installer type
SchemaInstaller = Callable[[Engine], None]

# Registry: (name, installer_func)
_REGISTRY: List[Tuple[str, SchemaInstaller]] = []

SCHEMAS_DIR = Path(__file__).resolve().parents[1] / "schemas"

def register(
    name: str | SchemaInstaller, installer: SchemaInstaller | None = None
) -> SchemaInstaller | Callable[[SchemaInstaller], SchemaInstaller]:
    """
    Registers a schema installer function.
    Can be used as a decorator (@register / @register("name")) or as a call
    (register("name", fn)). Registering the same name twice is a no-op.
    """
    def _add(label: str, fn: SchemaInstaller) -> SchemaInstaller:
        if label not in registered_names():
            _REGISTRY.append((label, fn))
        return fn

    if isinstance(name, str) and installer is None:
        return lambda fn: _add(name, fn)
    if callable(name) and installer is None:
        return _add(name.__name__, name)
    if isinstance(name, str) and callable(installer):
        return _add(name, installer)
    raise TypeError("Invalid usage of @register")

def registered_names() -> List[str]:
    return [label for label, _ in _REGISTRY]

def run_all(engine: Engine) -> None:
    """Run every registered installer; all of them are idempotent."""
    failed: List[str] = []
    for label, installer_fn in _REGISTRY:
        try:
            logger.info(f"Applying schema: {label}")
            installer_fn(engine)
        except Exception:
            logger.exception(f"Schema installer failed: {label}")
            failed.append(label)
    if failed:
        raise RuntimeError(f"Schema installers failed: {', '.join(failed)}")

def auto_discover(package: str = "schemas", start_path: Path = SCHEMAS_DIR) -> List[str]:
    """
    Imports every module of the schemas package so their @register
    decorators run. Returns the imported module names.
    """
    if not start_path.is_dir():
        logger.warning(f"Schema auto_discover: {start_path} is not a directory")
        return []

    imported = []
    for _, module_name, is_pkg in pkgutil.iter_modules([str(start_path)], prefix=f"{package}."):
        if is_pkg:
            continue
        importlib.import_module(module_name)
        imported.append(module_name)
        logger.debug(f"Schema auto_discover: {module_name}")
    return imported
