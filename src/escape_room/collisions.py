from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Tuple

from .world import Action

Cell = Tuple[int, int]


@dataclass
class MoveRecord:
    """What one agent decided this turn."""

    agent: int
    start: Cell
    action: Action
    destination: Cell

    @property
    def blocked(self) -> bool:
        return self.action != Action.STAY and self.destination == self.start


class ClaimMap:
    """
    Arbitrates destination cells between agents within one turn.

    Each cell is claimed by at most one agent. When two agents want the same
    cell both go back to where they started, and whoever had claimed one of
    those start cells is sent back as well, and so on down the chain.
    """

    def __init__(self) -> None:
        self.claims: Dict[Cell, int] = {}
        self.records: Dict[int, MoveRecord] = {}

    def claimant(self, cell: Cell) -> Optional[int]:
        return self.claims.get(cell)

    def claim(self, record: MoveRecord) -> Cell:
        """Register ``record`` and return the cell it ends up holding."""
        self.records[record.agent] = record
        incumbent = self._conflict_with(record)
        if incumbent is not None:
            self._revert_chain(incumbent)
            record.destination = record.start
            newcomer_chain = self.claims.get(record.start)
            if newcomer_chain is not None:
                self._revert_chain(newcomer_chain)
        self.claims[record.destination] = record.agent
        return record.destination

    def _conflict_with(self, record: MoveRecord) -> Optional[int]:
        incumbent = self.claims.get(record.destination)
        if incumbent is not None:
            return incumbent
        if record.destination == record.start:
            return None
        # Head-on swap: the agent heading into our start cell came from our destination.
        other = self.claims.get(record.start)
        if other is not None and self.records[other].start == record.destination:
            return other
        return None

    def _revert_chain(self, first: int) -> List[int]:
        reverted: List[int] = []
        pending: Deque[int] = deque([first])
        while pending:
            agent = pending.popleft()
            record = self.records[agent]
            record.destination = record.start
            reverted.append(agent)
            previous = self.claims.get(record.start)
            self.claims[record.start] = agent
            # An agent that already held its own start cell ends the chain.
            if previous is not None and previous != agent:
                pending.append(previous)
        return reverted

    def destinations(self) -> Dict[int, Cell]:
        return {agent: record.destination for agent, record in self.records.items()}


def resolve_moves(records: List[MoveRecord]) -> Dict[int, Cell]:
    """Claim every record in order and return the final destination per agent."""
    claim_map = ClaimMap()
    for record in records:
        claim_map.claim(record)
    return claim_map.destinations()
