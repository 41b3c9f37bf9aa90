import logging

from fastapi import FastAPI, HTTPException, Query
from wordlink_core.models import TranslateRequest, TranslationResult
from .runner_api import call_worker

logger = logging.getLogger("wordlink.translation")

app = FastAPI(title="translation service", version="0.1.0")

@app.get("/healthz")
def healthz():
    return {"ok": True}

@app.post("/v1/translate", response_model=TranslationResult)
def translate_api(req: TranslateRequest, model_key: str = Query("openai_chat", description="which translation model to use")):
    try:
        return call_worker(model_key, req, TranslationResult)
    except Exception as e:  # noqa: BLE001
        logger.error("Translation worker failed (model=%s, %s -> %s): %s", model_key, req.source_lang, req.target_lang, e)
        raise HTTPException(500, str(e))
