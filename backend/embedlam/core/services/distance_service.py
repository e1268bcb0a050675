from __future__ import annotations

from collections.abc import Mapping, Sequence  # noqa: TCH003

from embedlam.core.embeddings.vector_math import cosine_distances, min_max_scale
from embedlam.core.errors import DegenerateVectorError, DimensionMismatchError
from embedlam.core.schemas.distance import DistanceMap, SemanticDistance
from embedlam.utils.logging import get_logger

logger = get_logger(__name__)

# (label, embeddings per provider)
Candidate = tuple[str, Mapping[str, Sequence[float]]]


class DistanceService:
    """Ranks candidates against a query, independently for every provider."""

    def rank_against(
        self,
        query: Mapping[str, Sequence[float]],
        candidates: Sequence[Candidate],
    ) -> DistanceMap:
        """Return the distances of ``candidates`` to ``query`` per provider.

        A provider maps to ``None`` when no candidate has an embedding for it, or
        when its vectors could not be compared. Scaling is local to each provider.
        """
        results: DistanceMap = {}
        for model_id, query_vector in query.items():
            results[model_id] = self._rank_for_provider(model_id, query_vector, candidates)
        return results

    @staticmethod
    def _rank_for_provider(
        model_id: str,
        query_vector: Sequence[float],
        candidates: Sequence[Candidate],
    ) -> list[SemanticDistance] | None:
        indexed = [
            (index, label, embeddings[model_id])
            for index, (label, embeddings) in enumerate(candidates)
            if embeddings.get(model_id) is not None
        ]
        if not indexed:
            return None

        try:
            distances = cosine_distances(query_vector, [vector for _, _, vector in indexed])
        except (DimensionMismatchError, DegenerateVectorError) as err:
            logger.warning("Skipping distances for %s: %s", model_id, err)
            return None

        scaled = min_max_scale(distances)
        return [
            SemanticDistance(label=label, index=index, distance=distance, distance_scaled=distance_scaled)
            for (index, label, _), distance, distance_scaled in zip(indexed, distances, scaled, strict=True)
        ]
