"""Configuration loading, validation, and persistence for volroute."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import asdict, replace
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from volroute.core.errors import ConfigurationError, ConfigValidationError
from volroute.core.model import DEFAULT_PLAIN_PORT, DEFAULT_SECURE_PORT, TvConfig

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "VOLROUTE_CONFIG"
CREDENTIAL_SUFFIX = "_client_key.txt"
LOG_FILE_NAME = "volroute.log"

_TRUE_STRINGS = {"1", "true"}
_FALSE_STRINGS = {"0", "false"}
# YAML 1.1 reads unquoted "10:20:30:40:50:60" as a base-60 integer.
_DECIMAL_INT_RE = re.compile(r"^[-+]?(?:0|[1-9][0-9_]*)$")


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate keys and keeps MAC addresses as strings."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: [(tag, regexp) for tag, regexp in value if tag != "tag:yaml.org,2002:int"]
    for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
UniqueKeyLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    _DECIMAL_INT_RE,
    list("-+0123456789"),
)


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in configuration")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    if sys.platform == "win32" and os.environ.get("APPDATA"):
        base = Path(os.environ["APPDATA"])
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "volroute" / "config.yaml"


def credential_path_for(config_path: Path) -> Path:
    """Return the client key file that sits beside ``config_path``."""
    return config_path.with_name(config_path.stem + CREDENTIAL_SUFFIX)


def log_path_for(config_path: Path) -> Path:
    return config_path.with_name(LOG_FILE_NAME)


def _load_schema_validator() -> Any:
    schema_text = resources.files("volroute.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not read configuration file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Configuration file {path} must contain a mapping at root")
    return {key: value for key, value in loaded.items() if value is not None}


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigValidationError(f"{context} must be boolean true/false")


def _normalize_port(value: Any, *, secure: bool) -> int:
    fallback = DEFAULT_SECURE_PORT if secure else DEFAULT_PLAIN_PORT
    try:
        port = int(value)
    except (TypeError, ValueError):
        LOGGER.warning("Failed to parse tv_port %r, using %d", value, fallback)
        return fallback
    if port <= 0 or port > 65535:
        LOGGER.warning("tv_port %d out of range, using %d", port, fallback)
        return fallback
    return port


def build_config(doc: dict[str, Any], source: Path | str = "<memory>") -> TvConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = TvConfig()
    secure = _normalize_bool(
        doc.get("use_secure_websocket", defaults.use_secure_websocket),
        context="use_secure_websocket",
    )
    return TvConfig(
        tv_ip=doc.get("tv_ip", defaults.tv_ip).strip(),
        tv_mac=doc.get("tv_mac", defaults.tv_mac).strip(),
        tv_port=_normalize_port(doc.get("tv_port", defaults.tv_port), secure=secure),
        use_secure_websocket=secure,
        device_hint=doc.get("device_hint", defaults.device_hint).strip(),
        only_when_atmos=_normalize_bool(
            doc.get("only_when_atmos", defaults.only_when_atmos),
            context="only_when_atmos",
        ),
        timeout_s=float(doc.get("timeout_s", defaults.timeout_s)),
        pairing_timeout_s=float(doc.get("pairing_timeout_s", defaults.pairing_timeout_s)),
        safe_tv_volume=int(doc.get("safe_tv_volume", defaults.safe_tv_volume)),
    )


def load_config(path: Path | None = None) -> TvConfig:
    """Load configuration from ``path``, falling back to defaults when it is absent."""
    path = path or default_config_path()
    if not path.exists():
        LOGGER.info("No configuration file at %s, using defaults", path)
        return TvConfig()
    return build_config(_read_yaml(path), path)


def save_config(config: TvConfig, path: Path | None = None) -> Path:
    path = path or default_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(asdict(config), sort_keys=False), encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not write configuration file {path}: {exc}") from exc
    return path


def update_config(config: TvConfig, key: str, raw_value: str) -> TvConfig:
    """Return ``config`` with ``key`` set from a user-typed string, validated like a file."""
    if key not in asdict(config):
        allowed = ", ".join(asdict(config).keys())
        raise ConfigValidationError(f"Unknown configuration key '{key}'. Allowed: {allowed}")
    doc = asdict(config)
    parsed = yaml.load(raw_value, Loader=UniqueKeyLoader) if raw_value.strip() else ""
    if key in ("tv_ip", "tv_mac", "device_hint"):
        parsed = raw_value
    doc[key] = parsed
    updated = build_config(doc, f"{key}={raw_value}")
    return replace(config, **{key: getattr(updated, key)})


def require_target(config: TvConfig) -> None:
    if not config.tv_ip or not config.tv_mac:
        raise ConfigurationError("TV IP and MAC address must both be configured.")
