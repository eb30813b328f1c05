"""Interval policy loading with built-in policy registry."""

import importlib
import importlib.util
import pathlib

_BUILTIN_POLICIES = {
    "fixed": "cardy.policies.fixed",
}


def load_policy(name: str, cardy_dir: pathlib.Path | None = None):
    # Check user override first
    if cardy_dir is not None:
        policy_path = cardy_dir / "policies" / f"{name}.py"
        if policy_path.exists():
            spec = importlib.util.spec_from_file_location(f"cardy_policy_{name}", str(policy_path))
            mod = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(mod)
            return mod.Policy()

    # Check built-in policies
    if name in _BUILTIN_POLICIES:
        mod = importlib.import_module(_BUILTIN_POLICIES[name])
        return mod.Policy()

    raise FileNotFoundError(f"Policy not found: {name}")
