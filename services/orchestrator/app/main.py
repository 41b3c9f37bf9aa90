import logging
import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

BASE = Path(__file__).resolve().parents[3]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from fastapi import FastAPI, HTTPException

from wordlink_core.alignment import assemble_sentence
from wordlink_core.envelope import EnvelopeError, validate_envelope
from wordlink_core.models import (
    AlignedSentence,
    AlignRequest,
    TranslateAlignRequest,
    TranslateAlignResponse,
    TranslateRequest,
    TranslationResult,
)
from wordlink_core.text import split_into_sentences
from services.translation.app.registry import WORKERS as TR_WORKERS

logger = logging.getLogger("wordlink.orchestrator")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

app = FastAPI(title="orchestrator", version="0.1.0")

TR_URL = os.getenv("TR_URL", "http://localhost:8002/v1/translate")
TR_MODEL = os.getenv("TR_MODEL", "openai_chat")


@app.on_event("startup")
async def startup_event() -> None:
    timeout = httpx.Timeout(connect=10.0, read=120.0, write=10.0, pool=None)
    app.state.http_client = httpx.AsyncClient(timeout=timeout)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    client = getattr(app.state, "http_client", None)
    if client:
        await client.aclose()


def get_http_client() -> httpx.AsyncClient:
    client = getattr(app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client not initialized; startup event did not run.")
    return client


def list_worker_models(workers: Dict[str, Any]) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for key, worker in workers.items():
        languages = getattr(worker, "languages", None)
        items.append(
            {
                "key": key,
                "languages": sorted(set(languages)) if languages else [],
            }
        )
    return items


def resolve_model_choice(requested: Optional[str], workers: Dict[str, Any], fallback: Optional[str] = None) -> str:
    if not workers:
        raise HTTPException(500, "No models registered for requested service")

    if requested:
        normalized = requested.strip()
        if normalized and normalized.lower() != "auto":
            return normalized

    if fallback and fallback in workers:
        return fallback

    return next(iter(workers))


class StepTimer:
    def __init__(self) -> None:
        self.timings: Dict[str, float] = {}

    @contextmanager
    def time(self, label: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self.timings[label] = duration
            logger.info("%s completed in %.2fs", label, duration)


class SentenceFailure(Exception):
    """A single sentence could not be translated or its envelope was unusable."""


async def run_translation_step(
    client: httpx.AsyncClient,
    tr_model: str,
    sentence: str,
    source_lang: str,
    target_lang: str,
    extra: Optional[Dict[str, Any]] = None,
) -> TranslationResult:
    tr_req = TranslateRequest(
        text=sentence,
        source_lang=source_lang,
        target_lang=target_lang,
        extra=dict(extra or {}),
    )
    try:
        response = await client.post(TR_URL, params={"model_key": tr_model}, json=tr_req.model_dump())
    except httpx.HTTPError as exc:
        logger.error("Translation service unreachable at %s: %s", TR_URL, exc)
        raise SentenceFailure(f"translation service unreachable: {exc}") from exc

    if response.status_code != 200:
        logger.error(
            "Translation service call failed (model=%s, source_lang=%s, target_lang=%s): %s",
            tr_model,
            source_lang,
            target_lang,
            response.text,
        )
        raise SentenceFailure(_error_detail(response))

    try:
        payload = response.json()
    except ValueError as exc:
        raise SentenceFailure(f"translation service returned invalid JSON: {exc}") from exc
    try:
        return validate_envelope(payload)
    except EnvelopeError as exc:
        raise SentenceFailure(f"LLM did not return proper format: {exc}") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:  # non-JSON error body
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict) and payload.get("detail"):
        return str(payload["detail"])
    return f"HTTP {response.status_code}"


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/v1/models")
def models() -> Dict[str, Any]:
    return {"translation": list_worker_models(TR_WORKERS)}


@app.post("/v1/align", response_model=AlignedSentence)
def align(req: AlignRequest) -> AlignedSentence:
    result = TranslationResult(translation=req.target_sentence, alignments=req.alignments)
    return assemble_sentence(0, req.source_sentence, result)


@app.post("/v1/translate-align", response_model=TranslateAlignResponse)
async def translate_align(req: TranslateAlignRequest) -> TranslateAlignResponse:
    if not req.text.strip():
        raise HTTPException(400, "Please enter source text")

    client = get_http_client()
    tr_model = resolve_model_choice(req.model_key, TR_WORKERS, fallback=TR_MODEL)
    timer = StepTimer()

    sentences = split_into_sentences(req.text)
    logger.info("Split text into %d sentence(s)", len(sentences))
    logger.info("Starting translation: %s -> %s (model=%s)", req.source_lang, req.target_lang, tr_model)

    aligned: List[AlignedSentence] = []
    for i, sentence in enumerate(sentences):
        logger.info("Processing sentence %d/%d: %r", i + 1, len(sentences), sentence)
        try:
            with timer.time(f"translate[{i}]"):
                result = await run_translation_step(
                    client, tr_model, sentence, req.source_lang, req.target_lang, req.extra
                )
        except SentenceFailure as exc:
            if aligned:
                logger.info("Discarding %d already aligned sentence(s)", len(aligned))
            message = f"Sentence {i + 1}/{len(sentences)} failed: {exc}"
            logger.error(message)
            raise HTTPException(500, message) from exc

        logger.info("Parsed %d alignments for sentence %d", len(result.alignments), i + 1)
        with timer.time(f"align[{i}]"):
            sentence_alignment = assemble_sentence(i, sentence, result)
        if sentence_alignment.dropped_pairs:
            logger.info(
                "Sentence %d: %d of %d proposed pairs could not be located",
                i + 1,
                sentence_alignment.dropped_pairs,
                len(result.alignments),
            )
        aligned.append(sentence_alignment)

    logger.info("All %d sentence(s) processed successfully", len(sentences))
    return TranslateAlignResponse(
        translation=" ".join(s.translation for s in aligned),
        sentences=aligned,
        timings=timer.timings,
    )
