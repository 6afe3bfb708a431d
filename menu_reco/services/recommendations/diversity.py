"""
Diversity re-ranking with Maximal Marginal Relevance (MMR)
Keeps the top of the list from filling up with near-duplicates
"""
from typing import Dict, List, Optional, Sequence

import numpy as np

from menu_reco.services.recommendations.models import CatalogItem, ScoredCandidate

CATEGORY_WEIGHT = 0.5
TAG_WEIGHT = 0.3
FLAVOR_WEIGHT = 0.2
MIN_CANDIDATES = 3


def cosine_similarity(vec1: Optional[Sequence[float]], vec2: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity of two vectors

    Mismatched dimensions, empty vectors and zero norms give 0.
    """
    if vec1 is None or vec2 is None or len(vec1) != len(vec2) or len(vec1) == 0:
        return 0.0
    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)
    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return 0.0
    return float(np.dot(a, b) / denominator)


def jaccard(tags1: frozenset, tags2: frozenset) -> float:
    union = tags1 | tags2
    if not union:
        return 0.0
    return len(tags1 & tags2) / len(union)


def item_similarity(item1: CatalogItem, item2: CatalogItem) -> float:
    """
    Similarity in [0, 1]: category equality, tag overlap and flavor cosine
    """
    similarity = 0.0

    if item1.category == item2.category:
        similarity += CATEGORY_WEIGHT

    if item1.tags and item2.tags:
        similarity += TAG_WEIGHT * jaccard(item1.tags, item2.tags)

    if item1.flavor_profile is not None and item2.flavor_profile is not None:
        similarity += FLAVOR_WEIGHT * cosine_similarity(item1.flavor_profile, item2.flavor_profile)

    return max(0.0, min(1.0, similarity))


def mmr_rerank(
    ranked: List[ScoredCandidate],
    items_by_id: Dict[str, CatalogItem],
    diversity_factor: float,
    limit: Optional[int] = None
) -> List[ScoredCandidate]:
    """
    Greedy MMR re-ranking

    Takes the most relevant candidate first, then repeatedly picks the
    candidate maximising
        (1 - diversity_factor) * relevance + diversity_factor * mean dissimilarity
    to the candidates already selected. Ties keep the earlier candidate.

    Args:
        ranked: Candidates sorted by relevance (descending)
        items_by_id: Catalog lookup for similarity
        diversity_factor: Lambda in [0, 1]
        limit: Slots to fill (None = whole list)

    Returns:
        Re-ranked candidates, at most limit long. The input is returned
        unchanged (apart from truncation) when diversity_factor is 0 or
        fewer than 3 candidates are given.
    """
    slots = len(ranked) if limit is None else max(0, min(limit, len(ranked)))

    if diversity_factor == 0 or len(ranked) < MIN_CANDIDATES:
        return list(ranked[:slots])
    if slots == 0:
        return []

    remaining = list(ranked)
    selected = [remaining.pop(0)]

    while remaining and len(selected) < slots:
        best_index = 0
        best_score = -np.inf

        for index, candidate in enumerate(remaining):
            candidate_item = items_by_id.get(candidate.item_id)
            dissimilarity = 0.0
            for chosen in selected:
                chosen_item = items_by_id.get(chosen.item_id)
                if candidate_item is not None and chosen_item is not None:
                    dissimilarity += 1.0 - item_similarity(candidate_item, chosen_item)
            dissimilarity /= len(selected)

            mmr_score = (1 - diversity_factor) * candidate.score + diversity_factor * dissimilarity
            if mmr_score > best_score:
                best_score = mmr_score
                best_index = index

        selected.append(remaining.pop(best_index))

    return selected
