"""Experiment variants and deterministic bucketing.

Assignment is hash-based: a SHA-256 digest of the identity is mapped to a
score in [0, 100) and the score is placed on the cumulative distribution of
the variants, walked in insertion order. The same identity and the same
ordered variants always yield the same variant, in any process.
"""
import hashlib
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from abexp.domain.errors import DistributionSumError
from abexp.domain.values import VariantData, VariantDistribution

# Allowed deviation of the distribution sum from 100, in percent
EPSILON = 0.2

U64_MAX = 2**64 - 1


def bucket_score(identity: str) -> float:
    """
    Map an identity to a uniformly distributed score in [0, 100).

    The first 8 bytes of the SHA-256 digest, read as a big-endian unsigned
    integer, are normalized by the largest 64-bit value.
    """
    digest = hashlib.sha256(identity.encode("utf-8")).digest()
    hash_value = int.from_bytes(digest[:8], "big")
    return hash_value / float(U64_MAX) * 100.0


@dataclass(frozen=True)
class Variant:
    """One arm of an experiment."""

    distribution: VariantDistribution
    data: VariantData


class ExperimentVariants:
    """Ordered, validated list of variants.

    The order is part of the configuration: it fixes the bucket boundaries,
    so it must be stored and restored exactly.
    """

    __slots__ = ("_variants",)

    def __init__(self, variants: Iterable[Variant]):
        variants = tuple(variants)
        self._validate_distribution(variants)
        self._variants: Tuple[Variant, ...] = variants

    @staticmethod
    def _validate_distribution(variants: Tuple[Variant, ...]) -> None:
        if not variants:
            raise DistributionSumError()

        total = sum(v.distribution.value for v in variants)
        if abs(total - 100.0) > EPSILON:
            raise DistributionSumError(total)

    @property
    def variants(self) -> Tuple[Variant, ...]:
        return self._variants

    def __iter__(self) -> Iterator[Variant]:
        return iter(self._variants)

    def __len__(self) -> int:
        return len(self._variants)

    def __eq__(self, other):
        if not isinstance(other, ExperimentVariants):
            return NotImplemented
        return self._variants == other._variants

    def __hash__(self):
        return hash(self._variants)

    def __repr__(self):
        return f"ExperimentVariants({list(self._variants)!r})"

    def assign_variant(self, identity: str) -> VariantData:
        """
        Deterministically assign a variant to an identity.

        Args:
            identity: Hash input, e.g. the device id as text

        Returns:
            Data of the first variant whose cumulative distribution is
            strictly greater than the identity's score. Falls back to the
            last variant when rounding leaves the score past the final
            boundary.
        """
        score = bucket_score(identity)

        cumulative = 0.0
        for variant in self._variants:
            cumulative += variant.distribution.value
            if score < cumulative:
                return variant.data

        return self._variants[-1].data
