from orders_core.models.core import Analyte, Order, OrderTest, TestGroup, TimeStampedModel
from orders_core.models.results import Result, ResultValue
from orders_core.models.audit import AuditLog, WorkflowTransition

__all__ = [
    "TimeStampedModel",
    "Analyte",
    "TestGroup",
    "Order",
    "OrderTest",
    "Result",
    "ResultValue",
    "WorkflowTransition",
    "AuditLog",
]
