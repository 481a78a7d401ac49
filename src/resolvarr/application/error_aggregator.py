"""Ordered collection of per-provider failures."""

from __future__ import annotations

from resolvarr.domain.entities import ProviderErrorRecord


class ErrorAggregator:
    """Accumulates one record per failed attempt, in the order added.

    No deduplication: a provider that fails twice appears twice.
    """

    def __init__(self) -> None:
        self._records: list[ProviderErrorRecord] = []

    def add(self, provider: str, message: str) -> None:
        self._records.append(ProviderErrorRecord(provider=provider, message=message))

    @property
    def records(self) -> tuple[ProviderErrorRecord, ...]:
        return tuple(self._records)

    @property
    def providers(self) -> tuple[str, ...]:
        return tuple(r.provider for r in self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)
