from typing import Dict, FrozenSet, Iterable, Mapping

from apps.core.exceptions import InvalidTransition


class TransitionTable:
    """
    Exhaustive, explicit transition table for one entity.

    Every status of the entity must appear as a key, terminal statuses map
    to an empty set, so an unknown status is a programming error rather than
    a silently refused transition.
    """

    def __init__(self, entity: str, transitions: Mapping[str, Iterable[str]]):
        self.entity = entity
        self._transitions: Dict[str, FrozenSet[str]] = {
            str(source): frozenset(str(target) for target in targets)
            for source, targets in transitions.items()
        }

    def __contains__(self, status) -> bool:
        return str(status) in self._transitions

    def allowed_from(self, status) -> FrozenSet[str]:
        return self._transitions[str(status)]

    def can(self, current, target) -> bool:
        return str(target) in self.allowed_from(current)

    def is_terminal(self, status) -> bool:
        return not self.allowed_from(status)

    def check(self, current, target):
        """Raise InvalidTransition unless ``current -> target`` is an edge."""
        if not self.can(current, target):
            raise InvalidTransition(
                f"Cannot move {self.entity} from '{current}' to '{target}'",
                current_status=str(current),
                requested_status=str(target),
            )
