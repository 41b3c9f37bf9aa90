import json
import sys
from pathlib import Path

import httpx
import pytest

BASE = Path(__file__).resolve().parents[3]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from fastapi import HTTPException  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from services.orchestrator.app import main as orchestrator_main  # noqa: E402
from wordlink_core.models import PhrasePair, TranslateAlignRequest, TranslationResult  # noqa: E402

TRANSLATIONS = {
    "De kat slaapt.": TranslationResult(
        translation="The cat sleeps.",
        alignments=[
            PhrasePair(source="De", target="The"),
            PhrasePair(source="kat", target="cat"),
            PhrasePair(source="slaapt", target="sleeps"),
        ],
    ),
    "Anna maakt de winkel schoon.": TranslationResult(
        translation="Anna cleans the shop.",
        alignments=[
            PhrasePair(source="Anna", target="Anna"),
            PhrasePair(source="maakt", target="cleans"),
            PhrasePair(source="de", target="the"),
            PhrasePair(source="winkel", target="shop"),
            PhrasePair(source="schoon", target="cleans"),
        ],
    ),
}


@pytest.fixture
def fake_translation(monkeypatch):
    calls = []

    async def fake_run_translation_step(client, tr_model, sentence, source_lang, target_lang, extra=None):  # noqa: ANN001
        calls.append((tr_model, sentence, source_lang, target_lang))
        if sentence not in TRANSLATIONS:
            raise orchestrator_main.SentenceFailure("LLM did not return proper format: missing translation")
        return TRANSLATIONS[sentence]

    monkeypatch.setattr(orchestrator_main, "run_translation_step", fake_run_translation_step)
    return calls


@pytest.mark.asyncio
async def test_translate_align_processes_sentences_in_order(fake_translation):
    await orchestrator_main.startup_event()
    try:
        response = await orchestrator_main.translate_align(
            TranslateAlignRequest(text="De kat slaapt. Anna maakt de winkel schoon.")
        )
    finally:
        await orchestrator_main.shutdown_event()

    assert [call[1] for call in fake_translation] == ["De kat slaapt.", "Anna maakt de winkel schoon."]
    assert fake_translation[0][0] == orchestrator_main.TR_MODEL
    assert fake_translation[0][2:] == ("Dutch", "English")
    assert response.translation == "The cat sleeps. Anna cleans the shop."
    assert [s.index for s in response.sentences] == [0, 1]

    first, second = response.sentences
    assert len(first.groups) == 3
    assert second.dropped_pairs == 1
    assert [g.color_index for g in second.groups] == [0, 1, 2, 3]
    assert {"translate[0]", "align[0]", "translate[1]", "align[1]"} <= set(response.timings)


@pytest.mark.asyncio
async def test_failure_on_any_sentence_fails_the_request(fake_translation):
    await orchestrator_main.startup_event()
    try:
        with pytest.raises(HTTPException) as excinfo:
            await orchestrator_main.translate_align(
                TranslateAlignRequest(text="De kat slaapt. Dit gaat mis. Anna maakt de winkel schoon.")
            )
    finally:
        await orchestrator_main.shutdown_event()

    assert excinfo.value.status_code == 500
    assert excinfo.value.detail.startswith("Sentence 2/3 failed: LLM did not return proper format")
    assert len(fake_translation) == 2


@pytest.mark.asyncio
async def test_blank_text_is_rejected(fake_translation):
    with pytest.raises(HTTPException) as excinfo:
        await orchestrator_main.translate_align(TranslateAlignRequest(text=" \n "))

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "Please enter source text"
    assert fake_translation == []


def test_translate_align_endpoint_uses_camel_case(fake_translation):
    with TestClient(orchestrator_main.app) as client:
        response = client.post(
            "/v1/translate-align",
            json={"text": "De kat slaapt.", "source_lang": "Dutch", "target_lang": "English", "model_key": "auto"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["translation"] == "The cat sleeps."
    sentence = body["sentences"][0]
    assert sentence["sourceTokens"] == ["de", "kat", "slaapt"]
    assert sentence["edges"][1] == {"sourcePos": 1, "targetPos": 1, "groupId": 1, "isPhrase": False}
    assert sentence["groups"][2]["colorIndex"] == 2


def test_align_endpoint_keeps_first_claim():
    client = TestClient(orchestrator_main.app)
    response = client.post(
        "/v1/align",
        json={
            "alignments": [
                {"source": "maakt", "target": "cleans"},
                {"source": "schoon", "target": "cleans"},
                {"source": "New York", "target": "New York"},
            ],
            "source_sentence": "Anna maakt de winkel schoon in New York",
            "target_sentence": "Anna cleans the shop in New York",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["droppedPairs"] == 1
    assert [g["groupId"] for g in body["groups"]] == [0, 2]
    assert body["groups"][1]["isPhrase"] is True
    assert len(body["groups"][1]["edges"]) == 4


def test_models_endpoint_lists_translation_workers():
    client = TestClient(orchestrator_main.app)
    assert client.get("/v1/models").json() == {"translation": [{"key": "openai_chat", "languages": []}]}


@pytest.mark.parametrize(
    "requested, expected",
    [("openai_chat", "openai_chat"), ("  custom ", "custom"), ("auto", "openai_chat"), (None, "openai_chat")],
)
def test_resolve_model_choice(requested, expected):
    assert orchestrator_main.resolve_model_choice(requested, orchestrator_main.TR_WORKERS, "openai_chat") == expected


def _mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_run_translation_step_posts_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["model_key"] = request.url.params["model_key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"translation": "The cat sleeps.", "alignments": [{"source": "kat", "target": "cat"}]},
        )

    async with _mock_client(handler) as client:
        result = await orchestrator_main.run_translation_step(
            client, "openai_chat", "De kat slaapt.", "Dutch", "English", {"temperature": 0.1}
        )

    assert result.translation == "The cat sleeps."
    assert seen["model_key"] == "openai_chat"
    assert seen["body"]["text"] == "De kat slaapt."
    assert seen["body"]["extra"] == {"temperature": 0.1}


@pytest.mark.asyncio
async def test_run_translation_step_surfaces_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "worker failed (1): Server not configured"})

    async with _mock_client(handler) as client:
        with pytest.raises(orchestrator_main.SentenceFailure, match="Server not configured"):
            await orchestrator_main.run_translation_step(client, "openai_chat", "Hallo.", "Dutch", "English")


@pytest.mark.asyncio
async def test_run_translation_step_rejects_incomplete_envelope():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"translation": "", "alignments": []})

    async with _mock_client(handler) as client:
        with pytest.raises(orchestrator_main.SentenceFailure, match="LLM did not return proper format"):
            await orchestrator_main.run_translation_step(client, "openai_chat", "Hallo.", "Dutch", "English")


@pytest.mark.asyncio
async def test_run_translation_step_unreachable_service():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _mock_client(handler) as client:
        with pytest.raises(orchestrator_main.SentenceFailure, match="unreachable"):
            await orchestrator_main.run_translation_step(client, "openai_chat", "Hallo.", "Dutch", "English")


def test_align_endpoint_accepts_camel_case_request():
    client = TestClient(orchestrator_main.app)
    response = client.post(
        "/v1/align",
        json={
            "alignments": [{"source": "kat", "target": "cat"}],
            "sourceSentence": "De kat",
            "targetSentence": "The cat",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["sourceText"] == "De kat"
    assert body["translation"] == "The cat"
    assert body["edges"] == [{"sourcePos": 1, "targetPos": 1, "groupId": 0, "isPhrase": False}]


def test_translate_align_endpoint_accepts_camel_case_request(fake_translation):
    with TestClient(orchestrator_main.app) as client:
        response = client.post(
            "/v1/translate-align",
            json={"text": "De kat slaapt.", "sourceLang": "nl", "targetLang": "en", "modelKey": "openai_chat"},
        )

    assert response.status_code == 200
    assert fake_translation == [("openai_chat", "De kat slaapt.", "nl", "en")]
