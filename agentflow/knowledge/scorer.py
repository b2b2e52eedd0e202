"""
Hybrid relevance scoring for knowledge entries.

Lexical score:
    (overlap + TAG_WEIGHT * tag_count) * priority / (ln(token_count + 1) + 1)

Semantic score is cosine similarity between query and entry embeddings,
floored at 0. When both exist with the same dimensionality the two are
blended as
    similarity * priority + lexical * LEXICAL_BLEND_WEIGHT
otherwise the lexical score stands alone.
"""

import math
from typing import Optional, Sequence

from agentflow.shared.constants import DEFAULT_TOP_K, LEXICAL_BLEND_WEIGHT, TAG_WEIGHT
from agentflow.shared.models import IndexedKnowledgeEntry, ScoredMatch


def lexical_score(query_tokens: Sequence[str], entry: IndexedKnowledgeEntry) -> float:
    """Token-overlap score with priority weighting and a length penalty."""
    if not entry.tokens:
        return 0.0

    overlap = sum(1 for token in query_tokens if token in entry.tokens)
    # An empty query overlaps nothing; tags alone never make an entry relevant
    if not overlap:
        return 0.0

    length_penalty = math.log(len(entry.tokens) + 1) + 1
    return (overlap + TAG_WEIGHT * entry.tag_count) * entry.effective_priority / length_penalty


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """dot(a, b) / (|a| * |b|); 0.0 for empty, mismatched or zero-norm vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = norm_a = norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if not norm_a or not norm_b:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def score_entry(
    query_tokens: Sequence[str],
    entry: IndexedKnowledgeEntry,
    query_embedding: Optional[Sequence[float]] = None,
) -> float:
    """Blended score when embeddings are commensurate, lexical score otherwise."""
    lexical = lexical_score(query_tokens, entry)
    if query_embedding and entry.embedding and len(entry.embedding) == len(query_embedding):
        # Negative similarity counts as no semantic match; scores stay >= 0
        similarity = max(0.0, cosine_similarity(query_embedding, entry.embedding))
        return similarity * entry.effective_priority + lexical * LEXICAL_BLEND_WEIGHT
    return lexical


def _to_match(rank: int, entry: IndexedKnowledgeEntry, score: float) -> ScoredMatch:
    return ScoredMatch(
        rank=rank,
        id=entry.id,
        title=entry.title,
        content=entry.content,
        summary=entry.summary,
        tags=entry.tags,
        keywords=entry.keywords,
        score=score,
    )


def rank_entries(
    query_tokens: Sequence[str],
    entries: Sequence[IndexedKnowledgeEntry],
    query_embedding: Optional[Sequence[float]] = None,
    top_k: int = DEFAULT_TOP_K,
) -> list[ScoredMatch]:
    """
    Rank entries best first and keep the top_k.

    Zero-score entries are dropped unless the query is empty. Ties keep the
    entries' original relative order. If nothing survives but the knowledge
    base is non-empty, the first min(top_k, N) entries are returned at score 0.
    """
    scored = [(entry, score_entry(query_tokens, entry, query_embedding)) for entry in entries]
    if query_tokens:
        scored = [(entry, score) for entry, score in scored if score > 0]

    # sorted() is stable, so equal scores keep declaration order
    scored = sorted(scored, key=lambda pair: pair[1], reverse=True)[:top_k]

    if not scored and entries:
        scored = [(entry, 0.0) for entry in entries[:min(top_k, len(entries))]]

    return [_to_match(rank, entry, score) for rank, (entry, score) in enumerate(scored, start=1)]
