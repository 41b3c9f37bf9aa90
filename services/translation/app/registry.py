from __future__ import annotations
import logging
from pathlib import Path
from wordlink_core.service_utils import Worker, read_model_languages

BASE = Path(__file__).resolve().parents[1]  # service root
logger = logging.getLogger("wordlink.translation")

# Map multiple models for this service
WORKERS = {
        "openai_chat": Worker(
            venv_python=BASE/"models/openaiChatModel/.venv/bin/python",
            runner=BASE/"models/openaiChatModel/runner.py",
            languages=read_model_languages("openai_chat"),
        ),
    }

def get_worker(model_key: str | None, source_language: str | None, target_language: str | None) -> tuple[Path, Path, str]:
    # Prefer the requested model if it supports the language pair
    selected_key = None
    if model_key in WORKERS and WORKERS[model_key].supports(source_language, target_language):
        selected_key = model_key

    # Otherwise, pick the first model that supports the language pair
    if selected_key is None:
        for k, w in WORKERS.items():
            if w.supports(source_language, target_language):
                selected_key = k
                break

    # Fallback to the first model if none declare support
    if selected_key is None:
        selected_key = next(iter(WORKERS))
        logger.warning(
            "No model found supporting language=%s - %s. Defaulting to %s.",
            source_language,
            target_language,
            selected_key,
        )

    w = WORKERS[selected_key]
    return w.venv_python, w.runner, selected_key
