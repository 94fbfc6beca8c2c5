"""Tree traversal: patterns, options and the operation engine.

This module exports the Option builder, the engine that runs copy, move,
delete and scan operations, and the event types they produce.
"""

from fstree.walk.engine import TreeOperationEngine, run_operation
from fstree.walk.glob import PatternSet, compile_patterns, escape
from fstree.walk.models import Action, EntryKind, OperationKind, TraversalEvent
from fstree.walk.option import (
    ConflictPolicy,
    Option,
    OptionTransform,
    Outcome,
    build_option,
    chain,
)
from fstree.walk.progress import Progress, measure, track
from fstree.walk.stream import Cancellation, EventStream, Subscription

__all__ = [
    "Action",
    "Cancellation",
    "ConflictPolicy",
    "EntryKind",
    "EventStream",
    "OperationKind",
    "Option",
    "OptionTransform",
    "Outcome",
    "PatternSet",
    "Progress",
    "Subscription",
    "TraversalEvent",
    "TreeOperationEngine",
    "build_option",
    "chain",
    "compile_patterns",
    "escape",
    "measure",
    "run_operation",
    "track",
]
