"""Configuration helpers: cardy directory discovery and settings."""

import os
import pathlib
import sys

DEFAULT_SETTINGS = {
    "storage": "local",
    "policy": "fixed",
    "due_limit": 20,
    "mongo_uri": "",
    "database_name": "cardy",
}


def get_cardy_dir() -> pathlib.Path:
    env_dir = os.environ.get("CARDY_DIR")
    if env_dir:
        print(f"Warning: using CARDY_DIR from environment: {env_dir}", file=sys.stderr)
        return pathlib.Path(env_dir)
    config_path = pathlib.Path.home() / ".config" / "cardy" / "config"
    if config_path.exists():
        for line in config_path.read_text().splitlines():
            line = line.strip()
            if line.startswith("DIR="):
                return pathlib.Path(line[4:].strip())
    return pathlib.Path.home() / ".local" / "share" / "cardy"


def load_settings(cardy_dir: pathlib.Path) -> dict:
    """Defaults, then cardy_dir/settings.toml, then CARDY_MONGO_URI from the environment."""
    settings_path = cardy_dir / "settings.toml"
    settings = dict(DEFAULT_SETTINGS)
    if settings_path.exists():
        settings.update(_parse_settings(settings_path.read_text()))
    mongo_uri = os.environ.get("CARDY_MONGO_URI")
    if mongo_uri:
        settings["mongo_uri"] = mongo_uri
    return settings


def _parse_settings(text: str) -> dict:
    """Flat key = value lines, each value coerced to the type of its default.

    Unknown keys are kept as parsed. A known integer setting with a
    non-integer or negative value is dropped with a warning.
    """
    result = {}
    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = (part.strip() for part in line.split("=", 1))
        if len(v) >= 2 and v[0] == v[-1] and v[0] in "\"'":
            v = v[1:-1]
        elif v in ("true", "false"):
            v = v == "true"
        elif v.lstrip("-").isdigit():
            v = int(v)
        default = DEFAULT_SETTINGS.get(k)
        if isinstance(default, str):
            v = str(v)
        elif isinstance(default, int) and isinstance(v, str) and v.isdigit():
            v = int(v)
        elif isinstance(default, int) and (isinstance(v, bool) or not isinstance(v, int) or v < 0):
            print(f"Warning: settings.toml line {lineno}: {k} must be a non-negative integer, "
                  f"ignoring {v!r}", file=sys.stderr)
            continue
        result[k] = v
    return result
