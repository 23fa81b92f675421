#!/usr/bin/env python3
"""Generate one FAQ batch for a site from the command line.

Runs the same workflow as POST /api/generate-faqs without the HTTP layer
(no CORS or rate limiting) and prints the response JSON.

Usage:
    python scripts/generate_faqs.py https://shop.example --existing "How do I cancel?" --semantic
"""

import argparse
import json
import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.env import load_env
from src.faq_generation.faq_service import FaqGenerationService
from src.faq_generation.gemini_client import GeminiClientError
from src.faq_generation.models import GenerateFaqsRequest
from src.faq_generation.url_guard import UrlValidationError


def main():
    parser = argparse.ArgumentParser(description="Generate a deduplicated FAQ batch for a URL")
    parser.add_argument("url", help="Public http(s) URL of the site")
    parser.add_argument("--existing", action="append", default=[], help="Question already shown (repeatable)")
    parser.add_argument("--query", action="append", default=[], help="Internal site-search query (repeatable)")
    parser.add_argument("--no-search", action="store_true", help="Skip search enrichment topics")
    parser.add_argument("--semantic", action="store_true", help="Enable semantic dedupe for this run")
    args = parser.parse_args()

    load_env()
    if args.semantic:
        os.environ["ENABLE_EMBED_DEDUPE"] = "true"

    request = GenerateFaqsRequest(
        url=args.url,
        include_search=not args.no_search,
        existing_questions=args.existing,
        site_search_queries=args.query,
    )
    try:
        response = FaqGenerationService().generate(request)
    except (UrlValidationError, GeminiClientError) as e:
        print(f"Generation failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(response.to_dict(), indent=2))


if __name__ == "__main__":
    main()
