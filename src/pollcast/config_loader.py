"""Load ServerConfig and sources from pollcast.yaml / pollcast.toml.

Merges file config with CLI kwargs.  CLI overrides file.

A config file looks like::

    [pollcast]
    default_interval = 2000
    check_heartbeat = true

    [[sources]]
    type = "rss-example"
    url = "http://localhost:9000/rss.xml"
    xml = true
    compare = "rss-latest"

    [[sources]]
    type = "json-example"
    url = "http://localhost:9000/json.json"
    compare = "feeds:compare_json"     # feeds.py next to the config file
"""

from __future__ import annotations

import importlib.util
import sys
import tomllib
from pathlib import Path
from typing import Any

import yaml

from pollcast._errors import ConfigurationError
from pollcast.config import ServerConfig
from pollcast.sources.source import Source
from pollcast.sources.strategies import strategy_from_name

CONFIG_NAMES = ("pollcast.yaml", "pollcast.yml", "pollcast.toml")

_CONFIG_KEYS = frozenset({
    "host", "port", "default_interval", "check_heartbeat", "heartbeat_interval",
    "request_options", "transport_options", "logging", "stats", "stats_interval",
})

_STRATEGY_KINDS = frozenset({"equal", "rss-latest", "first-item"})


def load_config(root: Path, **overrides: object) -> ServerConfig:
    """Load ServerConfig from root, optionally merging the config file.

    Overrides whose value is None are ignored, so unset CLI flags do not
    mask file values.

    Raises:
        ConfigurationError: If the file is malformed or has unknown values.

    """
    file_config = _flatten_pollcast_section(read_config_file(root))
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    try:
        return ServerConfig(root=root, **merged)
    except TypeError as exc:
        msg = f"invalid server configuration: {exc}"
        raise ConfigurationError(msg) from exc


def load_sources(root: Path) -> list[Source]:
    """Read ``sources`` entries from the config file in *root*.

    ``compare`` may be a strategy name (``equal``, ``rss-latest``,
    ``first-item:<field>``) or a ``module:attr`` reference to a callable in a
    ``<module>.py`` file next to the config.

    Raises:
        ConfigurationError: If an entry is malformed or its compare
            reference cannot be resolved.

    """
    data = read_config_file(root)
    entries = data.get("sources") or []
    if not isinstance(entries, list):
        msg = "'sources' must be a list of tables"
        raise ConfigurationError(msg)

    sources: list[Source] = []
    for entry in entries:
        if not isinstance(entry, dict):
            msg = f"source entry must be a table, got {entry!r}"
            raise ConfigurationError(msg)
        record = dict(entry)
        if isinstance(record.get("compare"), str):
            record["compare"] = resolve_compare(record["compare"], root)
        sources.append(Source.from_mapping(record))
    return sources


def resolve_compare(ref: str, root: Path) -> Any:
    """Resolve a compare reference from a config file.

    Raises:
        ConfigurationError: If *ref* is neither a strategy name nor a
            loadable ``module:attr`` callable.

    """
    kind = ref.partition(":")[0]
    if kind in _STRATEGY_KINDS:
        return strategy_from_name(ref)

    module_part, _, attr = ref.partition(":")
    if not module_part or not attr:
        msg = f"compare {ref!r}: expected a strategy name or module:attr"
        raise ConfigurationError(msg)
    py_file = root / f"{module_part}.py"
    if not py_file.is_file():
        msg = f"compare {ref!r}: {py_file} not found"
        raise ConfigurationError(msg)
    module_name = f"pollcast_compare_{module_part}"
    spec_obj = importlib.util.spec_from_file_location(module_name, py_file)
    if spec_obj is None or spec_obj.loader is None:
        msg = f"compare {ref!r}: failed to load {py_file}"
        raise ConfigurationError(msg)
    module = importlib.util.module_from_spec(spec_obj)
    sys.modules[module_name] = module
    spec_obj.loader.exec_module(module)
    target = getattr(module, attr, None)
    if target is None:
        msg = f"compare {ref!r}: {attr} not found in {py_file}"
        raise ConfigurationError(msg)
    if isinstance(target, type):
        target = target()
    return target


def read_config_file(root: Path) -> dict[str, Any]:
    """Read the first config file found in *root*.  Empty dict if none."""
    for name in CONFIG_NAMES:
        path = root / name
        if path.is_file():
            return _parse_toml(path) if path.suffix == ".toml" else _parse_yaml(path)
    return {}


def _parse_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        msg = f"{path.name}: {exc}"
        raise ConfigurationError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path.name}: top level must be a mapping"
        raise ConfigurationError(msg)
    return data


def _parse_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        msg = f"{path.name}: {exc}"
        raise ConfigurationError(msg) from exc


def _flatten_pollcast_section(data: dict[str, Any]) -> dict[str, Any]:
    """Extract pollcast.* keys and known top-level keys into config kwargs."""
    result: dict[str, Any] = {}
    for k, v in data.items():
        if k in _CONFIG_KEYS:
            result[k] = v
    section = data.get("pollcast")
    if isinstance(section, dict):
        for k, v in section.items():
            if k not in _CONFIG_KEYS:
                msg = f"unknown pollcast setting {k!r}"
                raise ConfigurationError(msg)
            result[k] = v
    return result
