from __future__ import annotations
import json
import subprocess
import sys
from pathlib import Path
from typing import Tuple, TypeVar

from pydantic import BaseModel

from wordlink_core.service_utils import model_params
from .registry import get_worker  # maps model_key -> (venv_python, runner_path)
from shutil import which

T = TypeVar("T", bound=BaseModel)
UV_BIN = which("uv")


def _format_cmd(venv_python: Path, runner: Path) -> Tuple[str, ...]:
    if UV_BIN:
        return (UV_BIN, "run", runner.name)
    if venv_python.exists():
        return (str(venv_python), str(runner))
    return (sys.executable, str(runner))


def _stderr_tail(stderr: str, lines: int = 5) -> str:
    return "\n".join((stderr or "").strip().splitlines()[-lines:])


def call_worker(model_key: str, payload: BaseModel, out_model: type[T]) -> T:
    vpy, runner, selected_key = get_worker(model_key, payload.source_lang, payload.target_lang)
    existing_extra = getattr(payload, "extra", {}) or {}
    payload.extra = {**model_params(selected_key), **existing_extra}

    cmd = list(_format_cmd(vpy, runner))
    proc = subprocess.run(
        cmd,
        input=payload.model_dump_json(),
        capture_output=True,
        cwd=runner.parent,
        text=True,
        check=False,
    )
    if proc.stderr:
        sys.stderr.write(proc.stderr)
    if proc.returncode != 0:
        raise RuntimeError(f"worker failed ({proc.returncode}): {_stderr_tail(proc.stderr)}")
    out = (proc.stdout or "").strip()

    if not out:
        raise RuntimeError("worker produced no output")
    try:
        data = json.loads(out)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"invalid JSON from worker: {e}\nraw:\n{out}")
    return out_model(**data)
