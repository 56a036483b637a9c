"""
Association reconciliation.

Brings a stored collection (an item's tags, an item's sources, a tag's
aliases) in line with a desired collection by inserting only what is
missing and deleting only what is no longer wanted.

The two phases are computed from a set difference, not a blind rewrite, so
re-running after a partial failure converges on the same end state without
duplicating or double-deleting members. Nothing here is atomic.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from gifcatalog.core.exceptions import ReconcileError
from gifcatalog.core.logging import get_logger

logger = get_logger(__name__)

MemberOperation = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class ReconcilePlan:
    """Members to insert and delete so that current becomes desired."""

    to_add: frozenset[str]
    to_remove: frozenset[str]

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of an applied reconciliation."""

    added: frozenset[str]
    removed: frozenset[str]
    members: frozenset[str]

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def plan_reconcile(current: Iterable[str], desired: Iterable[str]) -> ReconcilePlan:
    """
    Compute the difference between two collections.

    Members are compared by value on their natural key (tag name, alias,
    source URL).

    Example:
        plan_reconcile({"a", "b", "c"}, {"b", "c", "d"})
        # ReconcilePlan(to_add={"d"}, to_remove={"a"})
    """
    current_set = frozenset(current)
    desired_set = frozenset(desired)
    return ReconcilePlan(
        to_add=desired_set - current_set,
        to_remove=current_set - desired_set,
    )


class AssociationReconciler:
    """
    Two-phase set sync over one parent's members.

    ``add`` and ``remove`` are the per-member storage primitives. They must
    be idempotent: add treats an identical existing row as success, remove
    deletes by key and is a no-op when the row is already gone.

    Usage:
        reconciler = AssociationReconciler(
            "item_tags",
            add=partial(link_tag, item_id),
            remove=partial(unlink_tag, item_id),
            parent=item_id,
        )
        result = await reconciler.reconcile(current_names, desired_names)
    """

    def __init__(
        self,
        relation: str,
        add: MemberOperation,
        remove: MemberOperation,
        parent: str | None = None,
    ):
        self.relation = relation
        self.add = add
        self.remove = remove
        self.parent = parent

    async def reconcile(self, current: Iterable[str], desired: Iterable[str]) -> ReconcileResult:
        """
        Apply the insertions and deletions needed to reach ``desired``.

        Raises:
            ReconcileError: A phase failed; members handled before the failure
                stay applied, so the call can simply be retried.
        """
        desired_set = frozenset(desired)
        plan = plan_reconcile(current, desired_set)

        if plan.is_empty:
            return ReconcileResult(added=frozenset(), removed=frozenset(), members=desired_set)

        # The sets are disjoint, so phase order doesn't matter
        await self._apply("add", plan.to_add, self.add)
        await self._apply("remove", plan.to_remove, self.remove)

        logger.info(
            "reconcile_applied",
            relation=self.relation,
            parent=self.parent,
            added=sorted(plan.to_add),
            removed=sorted(plan.to_remove),
        )
        return ReconcileResult(added=plan.to_add, removed=plan.to_remove, members=desired_set)

    async def _apply(self, phase: str, members: frozenset[str], operation: MemberOperation) -> None:
        """Dispatch one phase concurrently and collect every failure."""
        if not members:
            return

        ordered = sorted(members)
        results = await asyncio.gather(
            *(operation(member) for member in ordered),
            return_exceptions=True,
        )

        failures: dict[str, BaseException] = {}
        for member, outcome in zip(ordered, results):
            if isinstance(outcome, Exception):
                failures[member] = outcome
            elif isinstance(outcome, BaseException):
                # Cancellation and interpreter exits are not member failures
                raise outcome

        if failures:
            logger.warning(
                "reconcile_phase_failed",
                relation=self.relation,
                parent=self.parent,
                phase=phase,
                failed=sorted(failures),
            )
            first = next(iter(failures.values()))
            raise ReconcileError(self.relation, phase, failures, parent=self.parent) from first
