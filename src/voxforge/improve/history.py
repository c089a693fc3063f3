"""In-memory append-only improvement history."""

from __future__ import annotations

from voxforge.improve.types import ImprovementRecord


class ImprovementHistory:
    def __init__(self) -> None:
        self._records: list[ImprovementRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: ImprovementRecord) -> None:
        self._records.append(record)

    def list(self, outcome_id: str | None = None) -> list[ImprovementRecord]:
        if outcome_id is None:
            return list(self._records)
        return [record for record in self._records if record.outcome_id == outcome_id]

    def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count
