from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

import yaml

from servicekit.config import ServiceConfig, configure, get_config

DEFAULT_ENV_VAR = "SERVICEKIT_CONFIG"
SECTION = "servicekit"


def _load_yaml_mapping(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except FileNotFoundError:
        raise
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def load_config(path: str | os.PathLike[str] | None = None, *, env_var: str = DEFAULT_ENV_VAR) -> tuple[ServiceConfig, dict[str, Any]]:
    """
    Load service defaults from a YAML file.

    An explicit `path` wins over `env_var`. The file may either hold the keys
    at the top level or under a `servicekit:` section. Returns the parsed
    config and a small metadata dict describing where it came from.
    """

    explicit_path = None
    mode = "explicit"
    if path is not None:
        explicit_path = str(path).strip() or None
    elif env_var:
        explicit_path = os.environ.get(env_var, "").strip() or None
        mode = "env"

    if not explicit_path:
        return ServiceConfig(), {"mode": "defaults", "paths": [], "env_var": env_var}

    expanded = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit_path)))
    payload = _load_yaml_mapping(expanded)

    if SECTION in payload:
        section = payload[SECTION]
        if section is None:
            section = {}
        if not isinstance(section, Mapping):
            raise ValueError(f"{expanded}: `{SECTION}` must be a mapping (type={type(section).__name__})")
        payload = dict(section)

    cfg = ServiceConfig.from_mapping(payload, path=SECTION)
    return cfg, {"mode": mode, "paths": [expanded], "env_var": env_var}


def configure_from_file(path: str | os.PathLike[str] | None = None, *, env_var: str = DEFAULT_ENV_VAR) -> ServiceConfig:
    cfg, meta = load_config(path, env_var=env_var)
    if meta["mode"] == "defaults":
        return get_config()
    return configure(cfg.to_dict())
