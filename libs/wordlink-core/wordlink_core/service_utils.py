from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml

CONFIG_DIR = Path(__file__).resolve().parent / "config"
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


@lru_cache(maxsize=None)
def load_model_config(model_key: str) -> Dict[str, Any]:
    """Read ``config/<model_key>.yaml`` as ``{"languages": [...], "params": {...}}``.

    Language names are lowercased; a missing ``languages`` list means the worker accepts
    any language pair.
    """

    cfg = CONFIG_DIR / f"{model_key}.yaml"
    if not cfg.exists():
        raise RuntimeError(f"configuration file not found for model '{model_key}': {cfg}")
    data = yaml.safe_load(cfg.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise RuntimeError(f"configuration for model '{model_key}' must be a mapping: {cfg}")
    return {
        "languages": [str(lang).lower() for lang in data.get("languages") or []],
        "params": dict(data.get("params") or {}),
    }


def read_model_languages(model_key: str) -> list[str]:
    return list(load_model_config(model_key)["languages"])


def model_params(model_key: str) -> Dict[str, Any]:
    # copy so callers can merge request values without touching the cache
    return dict(load_model_config(model_key)["params"])


def resolve_log_level(value: Any, default: int = logging.INFO) -> int:
    if isinstance(value, int):
        return value
    level = getattr(logging, str(value or "").upper(), None)
    return level if isinstance(level, int) else default


def get_worker_logger(model_key: str, level: Any = None) -> logging.Logger:
    """Logger for a translation worker; stdout is reserved for the JSON reply."""

    logger = logging.getLogger(f"wordlink.worker.{model_key}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(resolve_log_level(level))
    logger.propagate = False
    return logger


@dataclass
class Worker:
    venv_python: Path
    runner: Path
    languages: list[str]

    def supports(self, source_lang: str | None, target_lang: str | None) -> bool:
        if not self.languages:
            return True
        return (
            (source_lang or "").lower() in self.languages
            and (target_lang or "").lower() in self.languages
        )
