"""Reconciles SmartHPA resources and hands them to the scheduler."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from queue import Queue

from smarthpa.client import HorizontalPodAutoscaler, InMemoryClient, NamespacedName, NotFoundError
from smarthpa.types import CONDITION_TRUE, Condition, SmartHorizontalPodAutoscaler

logger = logging.getLogger(__name__)


class SmartHorizontalPodAutoscalerReconciler:
    """Checks that a SmartHPA's referenced HPA exists, records the outcome and enqueues it."""

    def __init__(self, client: InMemoryClient, work_queue: Queue) -> None:
        self.client = client
        self.queue = work_queue

    def _set_condition(
        self, smart_hpa: SmartHorizontalPodAutoscaler, type_: str, reason: str, message: str
    ) -> None:
        smart_hpa.status.conditions = [
            Condition(
                type=type_,
                status=CONDITION_TRUE,
                reason=reason,
                message=message,
                last_transition_time=datetime.now(timezone.utc),
            )
        ]

    def reconcile(self, key: NamespacedName) -> None:
        """Reconcile the SmartHPA named ``key``.

        A SmartHPA that no longer exists is ignored. Raises NotFoundError when the
        referenced HPA is missing, after recording an Error condition in the status,
        and ValueError when the SmartHPA has no HPA reference.
        """
        try:
            smart_hpa = self.client.get(key, SmartHorizontalPodAutoscaler)
        except NotFoundError as exc:
            logger.error("unable to fetch SmartHorizontalPodAutoscaler %s: %s", key, exc)
            return

        ref = smart_hpa.spec.hpa_object_ref
        if ref is None:
            raise ValueError(f"SmartHPA {key} has no HPA reference")
        hpa_key = NamespacedName(namespace=ref.namespace, name=ref.name)

        try:
            self.client.get(hpa_key, HorizontalPodAutoscaler)
        except NotFoundError:
            self._set_condition(smart_hpa, "Error", "HPANotFound", "Referenced HPA not found")
            try:
                self.client.update_status(smart_hpa)
            except NotFoundError as status_exc:
                logger.error("unable to update SmartHPA status: %s", status_exc)
            raise

        self._set_condition(smart_hpa, "Ready", "Reconciled", "SmartHPA reconciled successfully")
        try:
            self.client.update_status(smart_hpa)
        except NotFoundError as exc:
            logger.error("unable to update SmartHPA status: %s", exc)
            raise

        self.queue.put(key)
        logger.info("enqueued SmartHPA %s", key)