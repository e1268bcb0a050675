from __future__ import annotations

import pytest

from embedlam.core.embeddings.vector_math import normalize
from embedlam.core.models.block import Block
from embedlam.core.models.tag import Tag
from embedlam.core.services.tag_service import TagAggregator


@pytest.fixture
def aggregator() -> TagAggregator:
    return TagAggregator(["A", "B"])


def test_tag_without_blocks_has_no_centroid(aggregator: TagAggregator):
    tag = Tag(label="empty")
    untagged = Block(label="b", text="b", embeddings={"A": [1.0, 0.0]})

    [updated] = aggregator.recompute_centroids([tag.id], [untagged], [tag])

    assert updated.avg_embeddings == {}


def test_single_tagged_block_gives_its_normalized_embedding(aggregator: TagAggregator):
    tag = Tag(label="t")
    block = Block(label="b", text="b", tag_ids={tag.id}, embeddings={"A": [2.0, 0.0, 0.0]})

    [updated] = aggregator.recompute_centroids([tag.id], [block], [tag])

    assert set(updated.avg_embeddings) == {"A"}
    assert updated.avg_embeddings["A"] == pytest.approx(normalize([2.0, 0.0, 0.0]))


def test_centroid_averages_tagged_blocks_per_provider(aggregator: TagAggregator):
    tag = Tag(label="t")
    blocks = [
        Block(label="1", text="1", tag_ids={tag.id}, embeddings={"A": [1.0, 0.0], "B": [0.0, 1.0]}),
        Block(label="2", text="2", tag_ids={tag.id}, embeddings={"A": [0.0, 1.0]}),
        Block(label="3", text="3", embeddings={"A": [-1.0, 0.0]}),
    ]

    [updated] = aggregator.recompute_centroids([tag.id], blocks, [tag])

    half = 2 ** -0.5
    assert updated.avg_embeddings["A"] == pytest.approx([half, half])
    assert updated.avg_embeddings["B"] == pytest.approx([0.0, 1.0])


def test_deleted_tag_is_skipped(aggregator: TagAggregator):
    gone = Tag(label="gone")
    assert aggregator.recompute_centroids([gone.id], [], []) == []


def test_degenerate_centroid_is_left_out(aggregator: TagAggregator):
    tag = Tag(label="t")
    blocks = [
        Block(label="1", text="1", tag_ids={tag.id}, embeddings={"A": [1.0, 0.0], "B": [1.0]}),
        Block(label="2", text="2", tag_ids={tag.id}, embeddings={"A": [-1.0, 0.0], "B": [1.0]}),
    ]

    [updated] = aggregator.recompute_centroids([tag.id], blocks, [tag])

    assert "A" not in updated.avg_embeddings
    assert updated.avg_embeddings["B"] == pytest.approx([1.0])


def test_recompute_does_not_mutate_input_tag(aggregator: TagAggregator):
    tag = Tag(label="t")
    block = Block(label="b", text="b", tag_ids={tag.id}, embeddings={"A": [1.0, 0.0]})

    aggregator.recompute_centroids([tag.id], [block], [tag])

    assert tag.avg_embeddings == {}
