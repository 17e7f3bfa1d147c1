"""Fake logistics provider — deterministic tasks for testing and development."""

from uuid import uuid4

from allocation.errors import TransientUpstreamError
from allocation.logistics.port import (
    TASK_ACCEPTED,
    TASK_CANCELLED,
    CancelResult,
    LogisticsPort,
    Payout,
    ServiceabilityResult,
    TaskResult,
)


class FakeLogistics(LogisticsPort):
    """Serviceable, accepting and cancelling by default."""

    def __init__(self):
        self.reset()

    def configure(
        self,
        serviceable: bool = True,
        accept_tasks: bool = True,
        cancel_tasks: bool = True,
        failure_reason: str = "Rider not available",
        transient_failures: int = 0,
    ):
        """Configure the fake provider behavior for testing.

        ``transient_failures`` makes that many calls raise TransientUpstreamError
        before the configured outcome is returned.
        """
        self.serviceable = serviceable
        self.accept_tasks = accept_tasks
        self.cancel_tasks = cancel_tasks
        self.failure_reason = failure_reason
        self.transient_failures = transient_failures

    def reset(self):
        self.serviceable = True
        self.accept_tasks = True
        self.cancel_tasks = True
        self.failure_reason = "Rider not available"
        self.transient_failures = 0
        self.serviceability_checks: list[str] = []
        self.created_tasks: list[dict] = []
        self.cancelled_tasks: list[str] = []

    def _maybe_time_out(self, operation: str) -> None:
        if self.transient_failures > 0:
            self.transient_failures -= 1
            raise TransientUpstreamError("logistics", f"{operation} timed out")

    def check_serviceability(self, request):
        self._maybe_time_out("serviceability")
        self.serviceability_checks.append(request.split_id)
        if not self.serviceable:
            return ServiceabilityResult(
                location_serviceable=False,
                rider_serviceable=False,
                error=self.failure_reason,
            )
        return ServiceabilityResult(
            location_serviceable=True,
            rider_serviceable=True,
            payout=Payout(price=50.0, tax=9.0, total=59.0),
        )

    def create_task(self, request):
        self._maybe_time_out("create_task")
        if not self.accept_tasks:
            return TaskResult(status=False, status_code="REJECTED", message=self.failure_reason)
        task_id = f"TASK-{uuid4().hex[:10].upper()}"
        self.created_tasks.append({"task_id": task_id, "split_id": request.split_id, "store_id": request.store_id})
        return TaskResult(status=True, task_id=task_id, status_code=TASK_ACCEPTED, message="Task created")

    def cancel_task(self, task_id, store_id):
        self._maybe_time_out("cancel_task")
        if not self.cancel_tasks:
            return CancelResult(status=False, status_code="NOT_CANCELLED", message=self.failure_reason)
        self.cancelled_tasks.append(task_id)
        return CancelResult(status=True, status_code=TASK_CANCELLED, message="Task cancelled")
