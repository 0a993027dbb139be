"""
Per-file outcome ledger for one run
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OutcomeState(Enum):
    DOWNLOADED = "downloaded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class OutcomeRecord:
    rel_path: str
    state: OutcomeState
    error: Optional[str] = None


class Outcomes:
    """
    Ordered {rel_path: OutcomeRecord}.

    A path holds one terminal record; recording it again (e.g. a retry that
    now succeeds) replaces the earlier record in place.
    """

    def __init__(self):
        self._records: dict[str, OutcomeRecord] = {}

    def record(self, rel_path: str, state: OutcomeState, error: Optional[str] = None) -> OutcomeRecord:
        rec = OutcomeRecord(rel_path, state, error)
        self._records[rel_path] = rec
        return rec

    def get(self, rel_path: str) -> Optional[OutcomeRecord]:
        return self._records.get(rel_path)

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records.values())

    def paths(self, state: OutcomeState) -> list[str]:
        return [r.rel_path for r in self._records.values() if r.state is state]

    @property
    def downloaded(self) -> list[str]:
        return self.paths(OutcomeState.DOWNLOADED)

    @property
    def skipped(self) -> list[str]:
        return self.paths(OutcomeState.SKIPPED)

    @property
    def failed(self) -> list[str]:
        return self.paths(OutcomeState.FAILED)

    def counts(self) -> tuple[int, int, int]:
        """(downloaded, skipped, failed); read by the progress spinner."""
        d = s = f = 0
        for rec in list(self._records.values()):
            if rec.state is OutcomeState.DOWNLOADED:
                d += 1
            elif rec.state is OutcomeState.SKIPPED:
                s += 1
            else:
                f += 1
        return d, s, f
