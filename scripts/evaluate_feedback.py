"""
Compare BM25 retrieval with and without Rocchio feedback on BRIGHT.

Usage:
    uv run python scripts/evaluate_feedback.py --domain biology --k 10
    uv run python scripts/evaluate_feedback.py --domain biology --fb-docs 5 --fb-terms 30 --workers 8
"""

from __future__ import annotations

import argparse
import json
import logging
import time

from datasets import load_dataset
from tqdm import tqdm

from ranking_feedback import (
    ExpansionParameters,
    InMemoryIndex,
    Query,
    RankingFeedbackError,
    RocchioExpander,
    StopFilter,
)
from ranking_feedback.metrics import mean, ndcg_at_k, recall_at_k

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("evaluate_feedback")


def load_benchmark(domain: str, stop_filter: StopFilter):
    docs = load_dataset("xlangai/BRIGHT", "documents", split=domain)
    examples = load_dataset("xlangai/BRIGHT", "examples", split=domain)
    index = InMemoryIndex.from_huggingface_dataset(docs, stop_filter=stop_filter)
    queries = [Query.from_text(row["query"], stop_filter, qid=str(row["id"])) for row in examples]
    gold_ids = [list(row["gold_ids"]) for row in examples]
    return index, queries, gold_ids


def score_run(
    index: InMemoryIndex, queries: list[Query], gold_ids: list[list[str]], k: int, depth: int
) -> dict[str, float]:
    ndcg_scores = []
    recall_scores = []
    for query, gold in zip(queries, gold_ids):
        retrieved = [hit.doc_id for hit in index.run_query(query, depth)]
        ndcg_scores.append(ndcg_at_k(gold, retrieved, k))
        recall_scores.append(recall_at_k(gold, retrieved, depth))
    return {"ndcg_at_k": mean(ndcg_scores), f"recall_at_{depth}": mean(recall_scores)}


def evaluate(domain: str, params: ExpansionParameters, k: int, depth: int, workers: int) -> dict:
    stop_filter = StopFilter.english()
    index, queries, gold_ids = load_benchmark(domain, stop_filter)
    logger.info("Loaded %d documents and %d queries for %s", len(index), len(queries), domain)

    baseline = score_run(index, queries, gold_ids, k, depth)

    expander = RocchioExpander(params, stop_filter, num_workers=workers)
    start = time.perf_counter()
    if workers > 1:
        expander.expand_queries(index, queries)
    else:
        for query in tqdm(queries, desc="Expanding"):
            expander.expand_query(index, query)
    expand_ms = (time.perf_counter() - start) * 1000

    feedback = score_run(index, queries, gold_ids, k, depth)
    return {
        "domain": domain,
        "k": k,
        "queries": len(queries),
        "parameters": params.to_dict(),
        "baseline": baseline,
        "rocchio": feedback,
        "expansion_time_ms": expand_ms,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Evaluate Rocchio feedback on BRIGHT.")
    parser.add_argument("--domain", default="biology", help="BRIGHT split to evaluate (default: biology).")
    parser.add_argument("--k", type=int, default=10, help="Cutoff for nDCG@k (default: 10).")
    parser.add_argument("--depth", type=int, default=100, help="Retrieval depth for recall (default: 100).")
    parser.add_argument("--alpha", type=float, default=1.0, help="Weight on the original query (default: 1.0).")
    parser.add_argument("--beta", type=float, default=0.75, help="Weight on feedback terms (default: 0.75).")
    parser.add_argument("--k1", type=float, default=1.2, help="BM25 k1 for term weighting (default: 1.2).")
    parser.add_argument("--b", type=float, default=0.75, help="BM25 b for term weighting (default: 0.75).")
    parser.add_argument("--fb-docs", type=int, default=10, help="Feedback documents (default: 10).")
    parser.add_argument("--fb-terms", type=int, default=10, help="Expansion terms (default: 10).")
    parser.add_argument("--workers", type=int, default=1, help="Threads for batch expansion (default: 1).")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format=LOG_FORMAT)

    try:
        params = ExpansionParameters(
            alpha=args.alpha,
            beta=args.beta,
            k1=args.k1,
            b=args.b,
            fb_docs=args.fb_docs,
            fb_terms=args.fb_terms,
        )
        results = evaluate(args.domain, params, args.k, args.depth, args.workers)
    except (RankingFeedbackError, OSError) as e:
        raise SystemExit(f"Evaluation failed: {e}")
    print(json.dumps(results, indent=2))


if __name__ == "__main__":
    main()
