"""Per-entry and per-report reconciliation results."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class EntryAction(StrEnum):
    UPSERT = "upsert"
    DELETE = "delete"


class EntryStatus(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    ABSENT = "absent"
    """Delete of a node that was already gone."""
    FAILED = "failed"


class ReconcilePhase(StrEnum):
    """States of a single entry's read/check/write cycle."""

    READING = "reading"
    CHECKING = "checking"
    WRITING = "writing"
    CONFLICT = "conflict"
    DONE = "done"
    FAILED = "failed"


class EntryOutcome(BaseModel):
    """Result of reconciling one update or delete entry."""

    model_config = ConfigDict(frozen=True)

    key: str
    action: EntryAction
    status: EntryStatus
    attempts: int = 0
    phases: tuple[ReconcilePhase, ...] = ()
    edge_version: str | None = None
    resource_version: str | None = None
    error_type: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != EntryStatus.FAILED

    @classmethod
    def failure(
        cls,
        key: str,
        action: EntryAction,
        exc: BaseException,
        *,
        attempts: int = 0,
        phases: tuple[ReconcilePhase, ...] = (),
    ) -> EntryOutcome:
        return cls(
            key=key,
            action=action,
            status=EntryStatus.FAILED,
            attempts=attempts,
            phases=phases,
            error_type=type(exc).__name__,
            error=str(exc),
        )


class ReportResult(BaseModel):
    """All entry outcomes of one decoded report."""

    model_config = ConfigDict(frozen=True)

    outcomes: list[EntryOutcome] = Field(default_factory=list)
    full_list_ignored: bool = False

    @property
    def succeeded(self) -> list[EntryOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[EntryOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def outcome_for(self, key: str, action: EntryAction | None = None) -> EntryOutcome | None:
        """Return the first outcome recorded for *key* (and *action*, if given)."""
        for outcome in self.outcomes:
            if outcome.key == key and (action is None or outcome.action == action):
                return outcome
        return None
