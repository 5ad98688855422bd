"""
lazyiter: lazy, composable iteration utilities.

Every factory returns a Producer, a single-pass iterator that only does work
when pulled:

    from lazyiter import count, collect

    evens = count(0, 2).filter(lambda x: x % 3 == 0).islice(None, 5)
    elements, n = collect(evens)   # [0, 6, 12, 18, 24], 5
"""

from .models import OperationSpec, OperationType, PairMode, PipelineRequest, SourceSpec, SourceType
from .producer import (
    Collected,
    Producer,
    collect,
    count,
    cycle,
    each,
    filter,
    islice,
    items,
    keys,
    map,
    sorted,
    takewhile,
    value,
    values,
)
from .utils import build_pipeline, process_lazy_operations, setup_logging

__version__ = "0.1.0"
__all__ = [
    # Core abstraction
    "Producer",
    "Collected",
    # Source adapters
    "keys",
    "values",
    "items",
    "each",
    # Generators
    "count",
    "value",
    "cycle",
    # Combinators
    "map",
    "filter",
    "takewhile",
    "islice",
    # Terminal operations
    "collect",
    "sorted",
    # Declarative pipelines
    "PairMode",
    "SourceType",
    "OperationType",
    "SourceSpec",
    "OperationSpec",
    "PipelineRequest",
    "build_pipeline",
    "process_lazy_operations",
    "setup_logging",
]
