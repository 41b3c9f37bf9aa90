from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

BASE = Path(__file__).resolve().parents[2]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from wordlink_core.alignment import assemble_sentence
from wordlink_core.models import TranslateAlignResponse, TranslateRequest, TranslationResult
from wordlink_core.samples import random_sentence
from wordlink_core.text import split_into_sentences
from services.translation.app import runner_api

logger = logging.getLogger("wordlink.translation.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wordlink-translate",
        description="Translate text sentence by sentence and print token-level alignments.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Source text, or a path to a UTF-8 text file. A demo sentence is used if omitted.",
    )
    parser.add_argument(
        "--source-lang",
        default="Dutch",
        help="Source language name (default: Dutch).",
    )
    parser.add_argument(
        "--target-lang",
        default="English",
        help="Target language name (default: English).",
    )
    parser.add_argument(
        "--model-key",
        default="openai_chat",
        help="Model key configured in the translation registry (default: openai_chat).",
    )
    parser.add_argument(
        "--output-json",
        type=Path,
        help="Path to store the aligned JSON result. Prints to stdout if omitted.",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser


def _load_text(raw: Optional[str]) -> str:
    if raw is None:
        return random_sentence()
    candidate = Path(raw).expanduser()
    if candidate.is_file():
        return candidate.read_text(encoding="utf-8")
    return raw


def run(args: argparse.Namespace) -> TranslateAlignResponse:
    text = _load_text(args.input)
    if not text.strip():
        raise ValueError("Please enter source text")

    sentences = split_into_sentences(text)
    logger.info("Split text into %d sentence(s)", len(sentences))

    response = TranslateAlignResponse()
    for i, sentence in enumerate(sentences):
        logger.info("Processing sentence %d/%d: %r", i + 1, len(sentences), sentence)
        request = TranslateRequest(text=sentence, source_lang=args.source_lang, target_lang=args.target_lang)
        try:
            result = runner_api.call_worker(args.model_key, request, TranslationResult)
        except Exception as exc:  # noqa: BLE001
            raise RuntimeError(f"Sentence {i + 1}/{len(sentences)} failed: {exc}") from exc
        response.sentences.append(assemble_sentence(i, sentence, result))

    response.translation = " ".join(s.translation for s in response.sentences)
    return response


def _emit(result: TranslateAlignResponse, output: Optional[Path]) -> None:
    payload = json.dumps(result.model_dump(by_alias=True), indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload, encoding="utf-8")
        print(f"✅ Alignment saved to {output}")
    else:
        print(payload)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        result = run(args)
    except ValueError as exc:
        print(f"❌ Invalid input: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # noqa: BLE001
        print(f"❌ Translation failed: {exc}", file=sys.stderr)
        return 1

    _emit(result, args.output_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
