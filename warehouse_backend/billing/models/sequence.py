# billing/models/sequence.py

from django.db import models


class BillSequence(models.Model):
    """
    Singleton counter for bill numbers.

    Incremented under select_for_update() in the same transaction that
    persists the bill, so a rolled-back bill gives its number back.
    """

    SINGLETON_PK = 1

    last_number = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Bill sequence at {self.last_number}"
