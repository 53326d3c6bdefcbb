#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json

from igire.config import settings
from igire.infra.groq_adapter import GroqAdapter
from igire.infra.repositories import build_repository
from igire.services.categorization import CATEGORIZE_PROMPT, CategorizationService, keyword_counts, keyword_fallback
from igire.services.institution_cache import InstitutionCache

SAMPLES = [
    "amazi ntaboneka kw'iminsi 3",
    "There is a huge pothole on the main road near the market",
    "Imyanda ntiyatwawe iminsi ibiri",
    "Power outage since yesterday evening in our village",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Compare LLM categorization against the keyword fallback.")
    parser.add_argument("text", nargs="*", help="complaint text; built-in samples are used when omitted")
    args = parser.parse_args()

    llm = GroqAdapter()
    repo, using_remote, err = build_repository()
    service = CategorizationService(llm, InstitutionCache(repo))

    print(f"GROQ_MODEL={settings.groq_model} enabled={llm.enabled}")
    print(f"institutions from {'mongodb' if using_remote else 'memory'}{'' if using_remote else f' ({err})'}")

    for text in [" ".join(args.text)] if args.text else SAMPLES:
        category, confidence = keyword_fallback(text)
        print(f"\n> {text}")
        print("  keyword hits:", json.dumps({c.value: n for c, n in keyword_counts(text).items()}))
        print(f"  fallback: {category.value} ({confidence})")
        if llm.enabled:
            print("  raw llm:", llm.chat_json(CATEGORIZE_PROMPT, f'Complaint: "{text}"'))
        print("  final:", service.categorize(text).model_dump())


if __name__ == "__main__":
    main()
