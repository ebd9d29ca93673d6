"""
Expand a single query with Rocchio feedback and print the expanded vector.

Usage:
    uv run python scripts/expand_query.py "drought tolerance in wheat" --domain biology
    uv run python scripts/expand_query.py "drought" --docs docs.jsonl --fb-docs 5 --fb-terms 20

--docs reads a JSONL file with one {"id": ..., "content": ...} object per line;
otherwise the BRIGHT documents split named by --domain is loaded.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from datasets import load_dataset

from ranking_feedback import (
    ExpansionParameters,
    InMemoryIndex,
    Query,
    RankingFeedbackError,
    RocchioExpander,
    StopFilter,
)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def load_parameters(args: argparse.Namespace) -> ExpansionParameters:
    values: dict = {}
    if args.params:
        with open(args.params, encoding="utf-8") as f:
            values.update(json.load(f))
    for name in ("alpha", "beta", "k1", "b", "fb_docs", "fb_terms"):
        value = getattr(args, name)
        if value is not None:
            values[name] = value
    return ExpansionParameters.from_dict(values)


def load_stop_filter(path: str | None) -> StopFilter:
    return StopFilter.from_file(path) if path else StopFilter.english()


def build_index(args: argparse.Namespace, stop_filter: StopFilter) -> InMemoryIndex:
    if args.docs:
        with open(args.docs, encoding="utf-8") as f:
            rows = [json.loads(line) for line in f if line.strip()]
        return InMemoryIndex.from_huggingface_dataset(rows, stop_filter=stop_filter)
    docs = load_dataset("xlangai/BRIGHT", "documents", split=args.domain)
    return InMemoryIndex.from_huggingface_dataset(docs, stop_filter=stop_filter)


def main() -> None:
    parser = argparse.ArgumentParser(description="Rocchio query expansion for a single query.")
    parser.add_argument("query", help="Query text.")
    parser.add_argument("--docs", default=None, help="JSONL corpus with id/content fields.")
    parser.add_argument("--domain", default="biology", help="BRIGHT split when --docs is not given.")
    parser.add_argument("--stopwords", default=None, help="Stop list file (default: Lucene English).")
    parser.add_argument("--params", default=None, help="JSON file with expansion parameters.")
    parser.add_argument("--alpha", type=float, default=None, help="Weight on the original query (default: 1.0).")
    parser.add_argument("--beta", type=float, default=None, help="Weight on feedback terms (default: 0.75).")
    parser.add_argument("--k1", type=float, default=None, help="BM25 k1 (default: 1.2).")
    parser.add_argument("--b", type=float, default=None, help="BM25 b (default: 0.75).")
    parser.add_argument("--fb-docs", dest="fb_docs", type=int, default=None, help="Feedback documents (default: 10).")
    parser.add_argument("--fb-terms", dest="fb_terms", type=int, default=None, help="Expansion terms (default: 10).")
    parser.add_argument("--top-k", type=int, default=10, help="Hits to print after expansion (default: 10).")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING).")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING), format=LOG_FORMAT)

    try:
        params = load_parameters(args)
        stop_filter = load_stop_filter(args.stopwords)
        index = build_index(args, stop_filter)
        query = Query.from_text(args.query, stop_filter)
        print(f"Original: {query.vector.to_query_string()}")

        expander = RocchioExpander(params, stop_filter)
        hits = expander.rerank(index, query, args.top_k)
    except KeyError as e:
        raise SystemExit(f"Expansion failed: document row is missing field {e}")
    except (RankingFeedbackError, OSError, ValueError) as e:
        raise SystemExit(f"Expansion failed: {e}")

    print(f"Expanded: {query.vector.to_query_string()}")
    print(f"\nTop {len(hits)} documents for the expanded query:")
    for rank, hit in enumerate(hits, start=1):
        print(f"  {rank:>3}. {hit.doc_id}  {hit.score:.4f}")


if __name__ == "__main__":
    main()
