from __future__ import annotations


class EmbedlamError(Exception):
    """Base class for application errors."""


class DegenerateVectorError(EmbedlamError, ValueError):
    """A vector with zero norm cannot be normalized."""


class DimensionMismatchError(EmbedlamError, ValueError):
    """Vectors that must share a length do not."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected vector of length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class ProviderError(EmbedlamError):
    """An embedding provider failed to return a usable vector."""

    def __init__(self, provider: str, cause: BaseException | str) -> None:
        super().__init__(f"Provider {provider} failed: {cause}")
        self.provider = provider
        self.cause = cause


class UnknownProviderError(EmbedlamError, KeyError):
    """A model identifier is not registered (or registered twice)."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class NotFoundError(EmbedlamError):
    """A block or tag referenced by id does not exist."""
