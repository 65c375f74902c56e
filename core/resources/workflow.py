"""Status transition tables.

Each resource's lifecycle is data: a set of named transitions, each naming
the statuses it may start from, the status it moves to and the date fields
it stamps. Guards are checked before any ERP write.

Usage:
    APPRAISAL_WORKFLOW = Workflow.of(
        transition("submit", ["OPEN"], "SUBMITTED", stamps=["submitted_date"]),
        transition("cancel", ["OPEN", "SUBMITTED"], "CANCELLED"),
    )
    APPRAISAL_WORKFLOW.check("APPRAISED", "submit")
    # "Cannot submit: status is 'APPRAISED', expected 'OPEN'"
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Transition:
    """One allowed move in a status machine."""
    name: str
    sources: Tuple[str, ...]
    target: str
    stamps: Tuple[str, ...] = ()
    verb: Optional[str] = None

    @property
    def past_tense(self) -> str:
        if self.verb:
            return self.verb
        words = self.name.replace("_", " ")
        return words + "d" if words.endswith("e") else words + "ed"

    def allows(self, status: Optional[str]) -> bool:
        return (status or "") in self.sources


def transition(
    name: str,
    sources: Iterable[str],
    target: str,
    stamps: Iterable[str] = (),
    verb: Optional[str] = None,
) -> Transition:
    return Transition(name, tuple(sources), target, tuple(stamps), verb)


@dataclass(frozen=True)
class Workflow:
    """A resource's transition table."""
    transitions: Mapping[str, Transition] = field(default_factory=dict)

    @classmethod
    def of(cls, *transitions: Transition) -> "Workflow":
        return cls({t.name: t for t in transitions})

    @property
    def actions(self) -> List[str]:
        return list(self.transitions.keys())

    @property
    def statuses(self) -> List[str]:
        """Every status the table mentions, in first-seen order."""
        seen: Dict[str, None] = {}
        for t in self.transitions.values():
            for status in t.sources + (t.target,):
                seen.setdefault(status, None)
        return list(seen)

    def get(self, action: str) -> Optional[Transition]:
        return self.transitions.get(action)

    def check(self, current: Optional[str], action: str) -> Optional[str]:
        """Return None if ``action`` is allowed from ``current``, else the reason."""
        t = self.transitions.get(action)
        if t is None:
            allowed = ", ".join(self.actions) or "none"
            return f"Unknown action '{action}'. Allowed actions: {allowed}"
        if not t.allows(current):
            expected = " or ".join(f"'{s}'" for s in t.sources)
            return (
                f"Cannot {action.replace('_', ' ')}: status is "
                f"'{current or ''}', expected {expected}"
            )
        return None

    def available(self, current: Optional[str]) -> List[str]:
        """Actions allowed from ``current``."""
        return [name for name, t in self.transitions.items() if t.allows(current)]
