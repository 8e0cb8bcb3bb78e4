"""gensync - output reconciliation, merging and rollback for generated code.

Usage:
    from gensync import ArtifactWriter, GenerationRunner, HistoryManager, SourceIdentity
    from gensync.history.store import FilesystemRunStore

    writer = ArtifactWriter("/path/to/app")
    history = HistoryManager(FilesystemRunStore(".gensync/history"))
    runner = GenerationRunner(writer, history)
    result = runner.apply(artifacts, SourceIdentity("Invoice", "blueprints/billing/invoice.yaml", "Billing"))
"""

from gensync.build.dag import DependencyOrder, order, order_with_status
from gensync.build.runner import GenerationRunner, PassResult, new_execution_id
from gensync.build.seeders import SeederRegistry
from gensync.build.sequencer import TimestampSequencer
from gensync.build.state import JsonStateStore, MemoryStateStore
from gensync.build.writer import ArtifactWriter, CasePolicy
from gensync.core.config import GenerationOptions
from gensync.core.models import (
    DependencyEntity,
    GeneratedArtifact,
    GenerationRun,
    SourceIdentity,
    WriteOutcome,
    WriteStatus,
)
from gensync.history.manager import HistoryManager
from gensync.history.rollback import Rollback, RollbackReport
from gensync.merge.aggregator import AggregatorMerger
from gensync.merge.routes import RouteRegistrar, RouteRegistration

__version__ = "0.1.0"

__all__ = [
    "AggregatorMerger",
    "ArtifactWriter",
    "CasePolicy",
    "DependencyEntity",
    "DependencyOrder",
    "GeneratedArtifact",
    "GenerationOptions",
    "GenerationRun",
    "GenerationRunner",
    "HistoryManager",
    "JsonStateStore",
    "MemoryStateStore",
    "PassResult",
    "Rollback",
    "RollbackReport",
    "RouteRegistrar",
    "RouteRegistration",
    "SeederRegistry",
    "SourceIdentity",
    "TimestampSequencer",
    "WriteOutcome",
    "WriteStatus",
    "new_execution_id",
    "order",
    "order_with_status",
]
