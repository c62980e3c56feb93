"""Data model for extracted reviews and run outcomes."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass
class Record:
    """One review card extracted from the listing.

    Every field has a neutral default so a card with nothing readable on it
    is still a valid record. ``score`` is ``None`` when the card is unscored
    or its score text could not be parsed.
    """

    title: str = ""
    text: str = ""
    score: Optional[float] = None
    date: str = ""
    traveler_type: str = ""
    nationality: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)


class TerminalState(str, Enum):
    """How a scrape run ended."""

    CLEAN = "clean"
    EXHAUSTED = "exhausted"
    FATAL = "fatal"


class ErrorKind(str, Enum):
    """Classification of the last navigation failure."""

    RATE_LIMITED = "rate_limited"
    OTHER = "other"


@dataclass
class NavigationAttempt:
    """Bookkeeping for one navigation (initial load or a single "next" click)."""

    target: str
    kind: str = "initial"
    attempt: int = 0
    last_error_kind: Optional[ErrorKind] = None
    last_error: Optional[BaseException] = None


@dataclass
class NavigationOutcome:
    """Result of a navigation under a retry policy."""

    success: bool
    attempts: int
    error: Optional[Exception] = None


class LoopState(str, Enum):
    """Position of a run in the pagination state machine."""

    DISCOVERING = "discovering"
    EXTRACTING = "extracting"
    ADVANCING_OR_DONE = "advancing_or_done"
    TERMINATED = "terminated"


@dataclass
class ScrapeResult:
    """Records collected by a run plus the state it terminated in.

    ``loop_state`` tracks this run's progress through the pagination state
    machine; ``finished_at`` is only set once the run terminates.
    """

    url: str
    records: List[Record] = field(default_factory=list)
    state: TerminalState = TerminalState.CLEAN
    loop_state: LoopState = LoopState.DISCOVERING
    pages_visited: int = 0
    last_page_hint: Optional[str] = None
    error: Optional[Exception] = None
    started_at: datetime = None
    finished_at: Optional[datetime] = None

    def __post_init__(self):
        if self.started_at is None:
            self.started_at = datetime.now(timezone.utc)

    def terminate(self, state: TerminalState, error: Optional[Exception] = None) -> "ScrapeResult":
        self.loop_state = LoopState.TERMINATED
        self.state = state
        self.error = error
        self.finished_at = datetime.now(timezone.utc)
        return self

    @property
    def is_partial(self) -> bool:
        return self.state is not TerminalState.CLEAN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "state": self.state.value,
            "pages_visited": self.pages_visited,
            "last_page_hint": self.last_page_hint,
            "error": str(self.error) if self.error else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "records": [r.to_dict() for r in self.records],
        }
