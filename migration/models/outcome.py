from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Outcome statuses
CREATED = "created"
EXISTING = "existing"
SIMULATED = "simulated"
SKIPPED = "skipped"
FAILED = "failed"

# Replay phases
PHASE_ROOT = "root"
PHASE_UNITS = "units"
PHASE_OBJECTS = "objects"
PHASE_MEMBERSHIPS = "memberships"


@dataclass
class ItemOutcome:
    """Result of one replay step for one item."""
    phase: str
    item: str
    status: str
    reason: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == FAILED


@dataclass
class ReplayReport:
    """Per-item outcomes of a replay, in the order they were recorded."""
    target_path: str
    simulate: bool = False
    outcomes: List[ItemOutcome] = field(default_factory=list)

    def extend(self, outcomes: List[ItemOutcome]) -> None:
        self.outcomes.extend(outcomes)

    def for_phase(self, phase: str) -> List[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.phase == phase]

    def failures(self) -> List[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    def counts(self) -> Dict[str, int]:
        """Number of outcomes per status."""
        return dict(Counter(outcome.status for outcome in self.outcomes))

    def counts_by_phase(self) -> Dict[str, Dict[str, int]]:
        summary: Dict[str, Dict[str, int]] = {}
        for outcome in self.outcomes:
            phase_counts = summary.setdefault(outcome.phase, {})
            phase_counts[outcome.status] = phase_counts.get(outcome.status, 0) + 1
        return summary
