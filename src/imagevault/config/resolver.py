"""Merge configuration sources into a validated ``ImageVaultConfig``."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import ImageVaultConfig

ENV_PREFIX = "IMAGEVAULT__"

Source = Tuple[str, Optional[Mapping[str, Any]]]


def resolve_with_precedence(
    *,
    defaults: ImageVaultConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ImageVaultConfig:
    """Layer file, environment, and CLI overrides on top of ``defaults``.

    Later sources win. Keys may be nested mappings or dotted paths such as
    ``thumbnails.max_dimension``.

    Raises:
        ConfigError: If an override is malformed or the merged values fail validation.
    """
    sources: Iterable[Source] = (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    )
    merged = defaults.model_dump(mode="python")
    for name, source in sources:
        if source is None:
            continue
        merged = _deep_merge(merged, expand_dotted(source, source_name=name))

    try:
        return ImageVaultConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str], prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Collect ``IMAGEVAULT__SECTION__KEY`` variables into a nested mapping.

    Values are parsed as YAML so ``true``, ``42`` and ``[a, b]`` become typed values.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(prefix):
            continue
        segments = [segment.lower() for segment in key[len(prefix) :].split("__") if segment]
        if not segments:
            continue
        try:
            value: Any = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        node = overrides
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value
    return overrides


def flatten_for_env(config: ImageVaultConfig) -> Dict[str, str]:
    """Render the config as ``IMAGEVAULT__SECTION__KEY`` environment assignments."""
    flat: Dict[str, str] = {}

    def _walk(path: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk([*path, str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in path)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[env_key] = "null"
        elif isinstance(value, bool):
            flat[env_key] = "true" if value else "false"
        else:
            flat[env_key] = str(value)

    _walk([], config.model_dump(mode="python"))
    return flat


def expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    """Convert a mapping with dotted keys into a nested mapping."""
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        path = key.split(".")
        node = expanded
        for segment in path[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{source_name.capitalize()} override for {key} conflicts with existing value."
                )
            node = child
        if isinstance(value, MappingABC):
            nested = expand_dotted(value, source_name=source_name)
            current = node.get(path[-1])
            node[path[-1]] = _deep_merge(current if isinstance(current, dict) else {}, nested)
        else:
            node[path[-1]] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "parse_env_overrides",
    "flatten_for_env",
    "expand_dotted",
]
