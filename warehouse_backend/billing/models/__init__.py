from .bill import Bill
from .bill_item import BillItem
from .sequence import BillSequence

__all__ = ["Bill", "BillItem", "BillSequence"]
