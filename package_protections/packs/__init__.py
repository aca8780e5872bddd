"""
Package store, violation ledgers and rule TODO lists read from disk.
"""

from .store import PackageStore
from .ledger import ViolationLedger, parse_ledger, LEDGER_FILENAMES
from .todo import RuleTodoList, RULE_TODO_FILENAME


__all__ = [
    "PackageStore",
    "ViolationLedger",
    "parse_ledger",
    "LEDGER_FILENAMES",
    "RuleTodoList",
    "RULE_TODO_FILENAME",
]
