# tasks.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .errors import ConfigError
from .model import Framework, JobConfig, build_config

DEFAULT_TASKS_FILE = "sauceci_tasks.py"

# Task file keys accepted for each framework, besides the enum value itself.
_FRAMEWORK_KEYS = {
    "jasmine": Framework.JASMINE,
    "qunit": Framework.QUNIT,
    "yui": Framework.YUI,
    "YUI Test": Framework.YUI,
    "mocha": Framework.MOCHA,
    "custom": Framework.CUSTOM,
}


def framework_for(name: str) -> Framework:
    try:
        return _FRAMEWORK_KEYS[name]
    except KeyError:
        raise ConfigError(
            f"Unknown framework {name!r}. Expected one of: {', '.join(sorted(_FRAMEWORK_KEYS))}"
        ) from None


def load_tasks(path: str | Path) -> Dict[Framework, Dict[str, Dict[str, Any]]]:
    """
    Load task targets from a python file.

    The file must define either:
      - tasks() -> {framework: {target: options}}
      - TASKS = {framework: {target: options}}

    Framework keys may be "jasmine", "qunit", "yui", "mocha" or "custom".
    Options are the JobConfig fields (camelCase aliases accepted).
    """
    tasks_path = Path(path).expanduser().resolve()
    if not tasks_path.exists():
        raise ConfigError(f"Tasks file not found: {tasks_path}")
    if tasks_path.suffix != ".py":
        raise ConfigError(f"Tasks file must be a .py file, got: {tasks_path.name}")

    module_name = f"sauceci_tasks_{tasks_path.stem}"
    globals_dict = runpy.run_path(str(tasks_path), run_name=module_name)

    if "tasks" in globals_dict and callable(globals_dict["tasks"]):
        raw = globals_dict["tasks"]()
    elif "TASKS" in globals_dict:
        raw = globals_dict["TASKS"]
    else:
        raise ConfigError("Tasks file must define tasks() or TASKS = {framework: {target: options}}.")

    if not isinstance(raw, dict):
        raise ConfigError("Tasks must be a dict of {framework: {target: options}}.")

    table: Dict[Framework, Dict[str, Dict[str, Any]]] = {}
    for key, targets in raw.items():
        framework = framework_for(key)
        if not isinstance(targets, dict) or not all(isinstance(v, dict) for v in targets.values()):
            raise ConfigError(f"Targets for {key!r} must be a dict of {{target: options}}.")
        table.setdefault(framework, {}).update(targets)
    return table


def select_jobs(
    table: Dict[Framework, Dict[str, Dict[str, Any]]],
    framework: Framework,
    targets: List[str] | Tuple[str, ...] = (),
) -> List[Tuple[str, JobConfig]]:
    """
    Build one JobConfig per requested target. No targets means every
    target defined for the framework, in file order.
    """
    defined = table.get(framework, {})
    if not defined:
        raise ConfigError(f"No targets defined for {framework.value}")

    names = list(targets) or list(defined)
    missing = [n for n in names if n not in defined]
    if missing:
        raise ConfigError(
            f"Unknown target(s) for {framework.value}: {', '.join(missing)}. "
            f"Known targets: {', '.join(defined)}"
        )

    jobs = []
    for name in names:
        options = defined[name]
        # Gruntfile-style targets wrap their options: {"options": {...}}
        if set(options) == {"options"}:
            options = options["options"]
        jobs.append((name, build_config(options)))
    return jobs
