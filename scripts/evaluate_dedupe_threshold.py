#!/usr/bin/env python3
"""Evaluate semantic dedupe thresholds against labeled question pairs.

Reads labeled pairs from tests/data/dedupe/labeled_question_pairs.json,
embeds both questions with the live embedding client, and reports precision
and recall of "duplicate" decisions for each candidate threshold.

Usage:
    python scripts/evaluate_dedupe_threshold.py [-t 0.8 0.85 0.88 0.9] [-o results.json]
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.env import load_env
from src.deduplication.embedding_client import EmbeddingClient, EmbeddingProviderError
from src.deduplication.normalization import normalize_question
from src.deduplication.similarity import cosine_similarity

PAIRS_PATH = PROJECT_ROOT / "tests" / "data" / "dedupe" / "labeled_question_pairs.json"
DEFAULT_THRESHOLDS = [0.80, 0.85, 0.88, 0.90, 0.92]


def load_pairs() -> List[Dict[str, Any]]:
    with open(PAIRS_PATH) as f:
        return json.load(f)["pairs"]


def score_pairs(client: EmbeddingClient, pairs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Embed each pair the way the dedupe engine does (accepted side normalized)."""
    accepted = client.embed([normalize_question(p["a"]) for p in pairs])
    candidates = client.embed([p["b"] for p in pairs])
    return [
        {**pair, "similarity": cosine_similarity(candidate, existing)}
        for pair, existing, candidate in zip(pairs, accepted, candidates)
    ]


def evaluate_threshold(scored: List[Dict[str, Any]], threshold: float) -> Dict[str, Any]:
    tp = sum(1 for s in scored if s["similarity"] >= threshold and s["duplicate"])
    fp = sum(1 for s in scored if s["similarity"] >= threshold and not s["duplicate"])
    fn = sum(1 for s in scored if s["similarity"] < threshold and s["duplicate"])
    return {
        "threshold": threshold,
        "precision": tp / (tp + fp) if tp + fp else 1.0,
        "recall": tp / (tp + fn) if tp + fn else 1.0,
        "false_positives": fp,
        "false_negatives": fn,
    }


def print_summary(scored: List[Dict[str, Any]], rows: List[Dict[str, Any]], verbose: bool) -> None:
    if verbose:
        for s in sorted(scored, key=lambda s: s["similarity"], reverse=True):
            label = "DUP " if s["duplicate"] else "    "
            print(f"{s['similarity']:.3f} {label} {s['a']!r} / {s['b']!r}")
        print()

    print("=" * 60)
    print(f"{'threshold':>10} {'precision':>10} {'recall':>10} {'FP':>5} {'FN':>5}")
    for row in rows:
        print(
            f"{row['threshold']:>10.2f} {row['precision']:>10.1%} {row['recall']:>10.1%} "
            f"{row['false_positives']:>5} {row['false_negatives']:>5}"
        )
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Evaluate semantic dedupe thresholds")
    parser.add_argument("-t", "--thresholds", type=float, nargs="+", default=DEFAULT_THRESHOLDS)
    parser.add_argument("-v", "--verbose", action="store_true", help="Print per-pair similarities")
    parser.add_argument("-o", "--output", type=str, help="Output JSON file for results")
    args = parser.parse_args()

    load_env()
    try:
        scored = score_pairs(EmbeddingClient(), load_pairs())
    except EmbeddingProviderError as e:
        print(f"Evaluation failed: {e}", file=sys.stderr)
        sys.exit(2)

    rows = [evaluate_threshold(scored, t) for t in args.thresholds]
    print_summary(scored, rows, args.verbose)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({"pairs": scored, "thresholds": rows}, f, indent=2)
        print(f"\nDetailed results written to: {args.output}")


if __name__ == "__main__":
    main()
