from openai import OpenAI, OpenAIError
from dotenv import load_dotenv
from wordlink_core.envelope import EnvelopeError, parse_translation_content
from wordlink_core.models import TranslateRequest, TranslationResult
from wordlink_core.service_utils import get_worker_logger
import json, sys, os, contextlib, logging, time

DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 0.3

SYSTEM_PROMPT = """You are an expert translator. You must respond with valid JSON only.

Translate from {source_lang} to {target_lang} naturally and idiomatically, then provide word alignments.

You MUST return a JSON object with this structure:
{{
  "translation": "the complete translated sentence in natural {target_lang} word order",
  "alignments": [
    {{"source": "word or phrase from source", "target": "corresponding word or phrase in translation"}},
    {{"source": "next word", "target": "its translation"}}
  ]
}}

Translation rules:
- Translate naturally using proper {target_lang} grammar and word order
- Do NOT force source language word order onto the translation
- Use idiomatic expressions when appropriate

Alignment rules:
- Map EVERY word from source to target
- ONLY group multi-word phrases when they form a single semantic unit that cannot be separated
  * Group: "New York" (proper noun), "ice cream" (compound noun), "give up" (phrasal verb)
  * Do not group: articles + nouns ("the cat"), prepositions + nouns ("in Paris"), adjectives + nouns ("red car")
- Prefer word-by-word alignments when possible
- Each source word/phrase appears in exactly one alignment
- Each target word/phrase appears in exactly one alignment
- List alignments in source text order (not translation order)

Separable verbs (especially Dutch and German):
- When a verb splits into a conjugated part and a separated prefix, BOTH parts map to the SAME target word
- Example: "Anna maakt de winkel schoon" -> "Anna cleans the shop"
  * "maakt" -> "cleans" (the conjugated part)
  * "schoon" -> "cleans" (the separated prefix)

Example 1 - "Zij praat vandaag een uur met haar buurman":
{{
  "translation": "She talks to her neighbor for an hour today",
  "alignments": [
    {{"source": "Zij", "target": "She"}},
    {{"source": "praat", "target": "talks"}},
    {{"source": "vandaag", "target": "today"}},
    {{"source": "een", "target": "an"}},
    {{"source": "uur", "target": "hour"}},
    {{"source": "met", "target": "to"}},
    {{"source": "haar", "target": "her"}},
    {{"source": "buurman", "target": "neighbor"}}
  ]
}}

Example 2 - "Anna maakt de winkel schoon":
{{
  "translation": "Anna cleans the shop",
  "alignments": [
    {{"source": "Anna", "target": "Anna"}},
    {{"source": "maakt", "target": "cleans"}},
    {{"source": "de", "target": "the"}},
    {{"source": "winkel", "target": "shop"}},
    {{"source": "schoon", "target": "cleans"}}
  ]
}}"""


def build_system_prompt(source_lang: str, target_lang: str) -> str:
    return SYSTEM_PROMPT.format(source_lang=source_lang, target_lang=target_lang)


def build_client(logger: logging.Logger) -> OpenAI:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("Server not configured: OPENAI_API_KEY missing in environment variables")
    base_url = os.getenv("OPENAI_BASE_URL")
    logger.debug("OpenAI client base_url=%s api_key=***", base_url or "default")
    return OpenAI(api_key=api_key, base_url=base_url) if base_url else OpenAI(api_key=api_key)


def translate(client: OpenAI, req: TranslateRequest, logger: logging.Logger) -> TranslationResult:
    extra = req.extra or {}
    model = extra.get("model") or os.getenv("OPENAI_MODEL") or extra.get("model_name") or DEFAULT_MODEL
    temperature = float(extra.get("temperature", DEFAULT_TEMPERATURE))
    logger.info("Sending request to provider (%s) source=%s target=%s", model, req.source_lang, req.target_lang)

    resp = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": build_system_prompt(req.source_lang, req.target_lang)},
            {"role": "user", "content": req.text},
        ],
        temperature=temperature,
        response_format={"type": "json_object"},
    )
    content = (resp.choices[0].message.content or "").strip()
    result = parse_translation_content(content)
    logger.info("Successfully parsed JSON with %d alignments", len(result.alignments))
    return result


if __name__ == "__main__":

    req = TranslateRequest(**json.loads(sys.stdin.read()))
    logger = get_worker_logger("openai_chat", req.extra.get("log_level"))
    load_dotenv()

    with contextlib.redirect_stdout(sys.stderr):
        start = time.perf_counter()
        try:
            client = build_client(logger)
            result = translate(client, req, logger)
        except (RuntimeError, EnvelopeError, OpenAIError) as exc:
            logger.error("%s", exc)
            sys.exit(1)
        logger.info("Completed translation in %.2fs (chars_in=%d).", time.perf_counter() - start, len(req.text))

    sys.stdout.write(result.model_dump_json() + "\n")
    sys.stdout.flush()
