from enum import Enum
from typing import Any, Dict, Optional

from models import Position, Worker


class ActionType(Enum):
    MOVE = "Move"
    BUILD = "Build"


class Action:
    def __init__(self, action_type: ActionType, worker: Worker, destination: Position,
                 origin: Optional[Position] = None, dome: bool = False):
        """Record of one executed move or build by a worker."""
        self.action_type = action_type
        self.worker = worker
        self.origin = origin  # Worker position before a move; the builder's position for builds
        self.destination = destination
        self.dome = dome  # Build only: the block placed was a dome

    def __repr__(self) -> str:
        return f"Action({self.action_type.value} {self.worker.label} -> {self.destination})"


def get_action_summary(action: Action) -> Dict[str, Any]:
    """Get a summary of an action for API responses and the game log."""
    summary = {
        "type": action.action_type.value,
        "worker": action.worker.label,
        "destination": {"row": action.destination.row, "col": action.destination.col},
    }

    if action.origin:
        summary["origin"] = {"row": action.origin.row, "col": action.origin.col}

    if action.action_type == ActionType.BUILD:
        summary["dome"] = action.dome

    return summary
