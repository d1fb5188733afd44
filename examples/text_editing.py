#!/usr/bin/env python3
"""
Text Editing Example
Edits a small record through the undo timeline: commit, undo, redo and
start a new branch after undoing.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
import sys
sys.path.append(str(Path(__file__).parent.parent))

from undo_timeline.managers import TransactionManager


@dataclass
class Item:
    a: str
    b: str


def append(mgr: TransactionManager, item: Item, label: str, suffix: str) -> None:
    """Record 'item.a += suffix' as its own transaction."""
    new_value = item.a + suffix
    old_value = item.a

    def redo():
        item.a = new_value

    def undo():
        item.a = old_value

    with mgr.transaction(label):
        mgr.store_and_execute(redo, undo)


def show(mgr: TransactionManager, item: Item, step: str) -> None:
    print(f"   {step:<28} a={item.a!r:<18} cursor={mgr.last_index():>2} size={mgr.size()}")


def run_example():
    """Walk through a short editing session."""
    print("Text Editing Example...")
    print("=" * 50)

    item = Item(a="Hello", b="Other")
    mgr = TransactionManager()

    print("\n1. Recording edits")
    append(mgr, item, "Add string", " World")
    show(mgr, item, "commit 'Add string'")
    append(mgr, item, "Add another string", "!")
    show(mgr, item, "commit 'Add another string'")

    print("\n2. Undo and redo")
    mgr.undo()
    show(mgr, item, "undo")
    mgr.undo()
    show(mgr, item, "undo")
    mgr.redo()
    show(mgr, item, "redo")

    print("\n3. Branching")
    print(f"   redo would reapply: {mgr.redo_label()!r}")
    append(mgr, item, "Add another !", "!!")
    show(mgr, item, "commit 'Add another !'")
    print(f"   redo available: {mgr.can_redo()}")

    print("\n4. History")
    for entry in mgr.history():
        marker = "*" if entry.applied else " "
        print(f"   {marker} [{entry.index}] {entry.label} ({entry.operations_count} operations)")

    print("\n" + "=" * 50)
    print("✅ Text editing example completed!")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    run_example()
