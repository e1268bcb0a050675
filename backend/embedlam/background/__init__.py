from .embedding import refresh_block_embeddings

__all__ = [
    "refresh_block_embeddings",
]
