# Overview: All-or-nothing grouping of store writes with a record of which steps ran.

"""
Unit of Work

WHY: Creating an invoice, taking a payment and approving a cancellation each
touch several records (stock, customer credit, the invoice, the audit log).
They must land together or not at all.

USAGE:
    with UnitOfWork(store, "approve_cancellation") as uow:
        uow.step("mark_cancelled", store.update, "Invoice", invoice.id, {...})
        uow.step("restore_stock[item 4]", apply_stock_delta, store, 4, qty)
        uow.step("audit", record_audit, store, actor, ...)

OUTCOMES:
- Every step succeeds: the store commits once, on exit.
- A step raises: the store rolls back everything since the unit began.
  * Nothing had completed yet: the original error propagates unchanged.
  * Some steps had completed: PartialFailureError is raised, naming the
    failed step, the completed steps and rolled_back=True, chained to the
    original error.
- Optimistic-lock/lock errors propagate unchanged after the rollback so that
  run_with_retry can re-run the whole operation.
"""

from __future__ import annotations

import logging

from ..errors import PartialFailureError
from .concurrency import RETRYABLE_ERRORS


logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, store, operation: str):
        self.store = store
        self.operation = operation
        self.completed_steps: list[str] = []
        self.current_step: str | None = None
        self.committed = False

    def __enter__(self) -> "UnitOfWork":
        return self

    def step(self, name: str, func, *args, **kwargs):
        self.current_step = name
        result = func(*args, **kwargs)
        self.completed_steps.append(name)
        self.current_step = None
        return result

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            self.current_step = "commit"
            try:
                self.store.commit()
            except Exception as commit_exc:
                self._rollback(commit_exc)
                raise
            self.current_step = None
            self.committed = True
            return False

        self._rollback(exc)
        return False

    def _rollback(self, exc: BaseException) -> None:
        """Undo the unit; escalate to PartialFailureError when steps had completed."""
        self.store.rollback()
        failed_step = self.current_step or "unknown"

        if (
            not isinstance(exc, Exception)
            or isinstance(exc, RETRYABLE_ERRORS)
            or not self.completed_steps
        ):
            logger.info("%s rolled back at step %s (%s)", self.operation, failed_step, type(exc).__name__)
            return

        logger.warning(
            "%s failed at step %s after %s; rolled back",
            self.operation,
            failed_step,
            ", ".join(self.completed_steps),
        )
        raise PartialFailureError(
            f"{self.operation} failed at step '{failed_step}'; no changes were kept",
            operation=self.operation,
            failed_step=failed_step,
            completed_steps=self.completed_steps,
            rolled_back=True,
            cause=exc,
        ) from exc
