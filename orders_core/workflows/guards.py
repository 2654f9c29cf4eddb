# orders_core/workflows/guards.py

from django.core.exceptions import PermissionDenied
from django.db import models


class WorkflowWriteGuardMixin(models.Model):
    """
    Order status, collection facts and result verification fields only move
    through executor.apply / repair_order and services.verification, which
    write them with conditional UPDATEs. An instance .save() that would
    change any WORKFLOW_FIELDS entry raises PermissionDenied; other fields
    save normally. New rows are not checked.

    Data fixes can pass _workflow_bypass=True to save() or set
    instance._workflow_bypass.
    """

    WORKFLOW_FIELDS = ("status",)
    WORKFLOW_BYPASS_KWARG = "_workflow_bypass"

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.WORKFLOW_BYPASS_KWARG, False)
            or getattr(self, "_workflow_bypass", False)
        )

        if not bypass and self.pk is not None and self.WORKFLOW_FIELDS:
            old = (
                self.__class__.objects.filter(pk=self.pk)
                .values(*self.WORKFLOW_FIELDS)
                .first()
            )
            if old is not None:
                changed = [
                    name for name in self.WORKFLOW_FIELDS
                    if old[name] != getattr(self, name, None)
                ]
                if changed:
                    raise PermissionDenied(
                        f"Direct modification of {', '.join(repr(c) for c in changed)} is forbidden. "
                        "Use the order status machine or the verification pipeline."
                    )

        return super().save(*args, **kwargs)


class ImmutableRowMixin(models.Model):
    """
    Rows are created once and never updated through the ORM instance API.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise PermissionDenied(f"{self.__class__.__name__} rows are immutable once created.")
        return super().save(*args, **kwargs)
