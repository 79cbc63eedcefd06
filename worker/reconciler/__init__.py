"""
Reconciler 모듈

주문/결제 기록과 현금 원장의 정합 검사 및 보정.
"""

from worker.reconciler.drift import DriftDetector, SaleDrift
from worker.reconciler.monitor import (
    CycleResult,
    ReconciliationMonitor,
    ReconciliationStatus,
)

__all__ = [
    "DriftDetector",
    "SaleDrift",
    "ReconciliationMonitor",
    "ReconciliationStatus",
    "CycleResult",
]
