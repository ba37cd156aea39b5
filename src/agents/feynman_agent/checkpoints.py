"""
Checkpoint track: the ordered learning milestones of one session.

Only two mutation paths exist: plan() builds the track, advance() moves the
single `current` marker forward. Status per checkpoint only ever goes
locked -> current -> completed.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Sequence

from agents.feynman_agent.errors import InvalidPlan
from agents.feynman_agent.schemas import Checkpoint, CheckpointStatus, PlanItem


class CheckpointTrack:
    def __init__(self) -> None:
        self._checkpoints: List[Checkpoint] = []

    def __len__(self) -> int:
        return len(self._checkpoints)

    def __getitem__(self, index: int) -> Checkpoint:
        return self._checkpoints[index]

    def __iter__(self) -> Iterator[Checkpoint]:
        return iter(self._checkpoints)

    def plan(self, items: Sequence[PlanItem]) -> List[Checkpoint]:
        """Replace the track with one checkpoint per item; the first becomes current."""
        if not items:
            raise InvalidPlan("provider returned zero checkpoints")
        self._checkpoints = [
            Checkpoint(
                id=i,
                title=item.title,
                objective=item.objective,
                status=CheckpointStatus.CURRENT if i == 0 else CheckpointStatus.LOCKED,
            )
            for i, item in enumerate(items)
        ]
        return self.snapshot()

    def advance(self, from_index: int) -> Optional[int]:
        """
        Complete checkpoint `from_index` and unlock the next one.
        Returns the next index, or None when the track is finished.
        """
        if not 0 <= from_index < len(self._checkpoints):
            raise IndexError(f"checkpoint index {from_index} out of range")
        checkpoint = self._checkpoints[from_index]
        if checkpoint.status != CheckpointStatus.CURRENT:
            raise ValueError(f"checkpoint {from_index} is {checkpoint.status.value}, not current")
        checkpoint.status = CheckpointStatus.COMPLETED
        next_index = from_index + 1
        if next_index < len(self._checkpoints):
            self._checkpoints[next_index].status = CheckpointStatus.CURRENT
            return next_index
        return None

    @property
    def current_index(self) -> Optional[int]:
        for cp in self._checkpoints:
            if cp.status == CheckpointStatus.CURRENT:
                return cp.id
        return None

    @property
    def all_completed(self) -> bool:
        return bool(self._checkpoints) and all(
            cp.status == CheckpointStatus.COMPLETED for cp in self._checkpoints
        )

    def snapshot(self) -> List[Checkpoint]:
        """Copies, so readers can't mutate statuses."""
        return [cp.model_copy() for cp in self._checkpoints]
