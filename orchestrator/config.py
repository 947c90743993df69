from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import ValidationError

from orchestrator.errors import ConfigError
from schemas.config_ir import AnalyzerConfig


BASE_CONFIG_NAME = "analyzer.yaml"
LOCAL_CONFIG_NAME = "analyzer.local.yaml"


def _deep_merge_dicts(base: dict, overlay: dict) -> dict:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml_dict(path: Path) -> Dict[str, object]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    # Settings may sit under an ``analyzer:`` key or at the top level.
    section = raw.get("analyzer", raw)
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: 'analyzer' must be a mapping")
    return section


def load_config(config_dir: Path, overrides: Optional[Dict[str, object]] = None) -> AnalyzerConfig:
    """Base config, then machine-local overrides (untracked), then CLI overrides."""
    config_dir = Path(config_dir)
    data: Dict[str, object] = {}
    base_path = config_dir / BASE_CONFIG_NAME
    local_path = config_dir / LOCAL_CONFIG_NAME
    if base_path.exists():
        data = _load_yaml_dict(base_path)
    if local_path.exists():
        data = _deep_merge_dicts(data, _load_yaml_dict(local_path))
    if overrides:
        data = _deep_merge_dicts(data, {k: v for k, v in overrides.items() if v is not None})
    try:
        return AnalyzerConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid analyzer config in {config_dir}: {exc}") from exc


def save_config(cfg: AnalyzerConfig, config_dir: Path, local: bool = True) -> Path:
    """Persist settings; machine-local by default so the tracked file stays clean."""
    config_dir = Path(config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / (LOCAL_CONFIG_NAME if local else BASE_CONFIG_NAME)
    payload = {"analyzer": cfg.model_dump()}
    path.write_text(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return path


def coerce_setting(cfg: AnalyzerConfig, key: str, raw: str) -> object:
    """Turn a ``config set KEY VALUE`` string into the field's type."""
    if key not in AnalyzerConfig.model_fields:
        raise ConfigError(f"unknown setting: {key}")
    current = getattr(cfg, key)
    if isinstance(current, bool):
        lowered = raw.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ConfigError(f"{key} expects a boolean, got {raw!r}")
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigError(f"{key} expects an integer, got {raw!r}") from exc
    if isinstance(current, float):
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigError(f"{key} expects a number, got {raw!r}") from exc
    return raw
