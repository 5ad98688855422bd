"""
Utility functions for lazyiter

Logging setup, building producer pipelines from validated descriptions, and
helpers for measuring the time and memory cost of draining them.
"""

import gc
import logging
import sys
import time
import tracemalloc
from typing import Any, Dict, Tuple, Union

from pydantic import ValidationError

from . import producer as p
from .models import OperationSpec, OperationType, PipelineRequest, SourceSpec, SourceType

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup structured logging for lazyiter"""
    root = logging.getLogger('lazyiter')
    root.setLevel(level)
    if not any(getattr(h, '_lazyiter', False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._lazyiter = True
        root.addHandler(handler)
    return root


# ---------- Pipeline construction ----------

def build_source(spec: SourceSpec) -> p.Producer:
    """Create the producer described by a source spec"""
    if spec.type == SourceType.EACH:
        return p.each(spec.data)
    if spec.type == SourceType.KEYS:
        return p.keys(spec.data)
    if spec.type == SourceType.VALUES:
        return p.values(spec.data)
    if spec.type == SourceType.ITEMS:
        return p.items(spec.data, spec.pair_mode)
    if spec.type == SourceType.COUNT:
        return p.count(spec.start, spec.step)
    if spec.type == SourceType.VALUE:
        return p.value(spec.value, spec.times)
    raise ValueError(f"Unknown source: {spec.type}")


def apply_operation(upstream: p.Producer, op: OperationSpec) -> p.Producer:
    """Wrap `upstream` in the combinator described by `op`"""
    if op.type == OperationType.MAP:
        return p.map(op.function, upstream)
    if op.type == OperationType.FILTER:
        return p.filter(op.function, upstream)
    if op.type == OperationType.TAKEWHILE:
        return p.takewhile(op.function, upstream)
    if op.type == OperationType.ISLICE:
        return p.islice(upstream, op.start, op.stop)
    if op.type == OperationType.CYCLE:
        return p.cycle(upstream)
    if op.type == OperationType.SORTED:
        return p.sorted(upstream, key=op.function, reverse=op.reverse, cache_keys=op.cache_keys)
    raise ValueError(f"Unknown op: {op.type}")


def build_pipeline(request: PipelineRequest) -> p.Producer:
    """Chain the source and operations of a request into one producer"""
    pipeline = build_source(request.source)
    for op in request.operations:
        pipeline = apply_operation(pipeline, op)
    if request.limit is not None:
        pipeline = p.islice(pipeline, None, request.limit)
    logger.debug(
        "Built pipeline: %s -> %s (limit=%s)",
        request.source.type.value,
        [op.type.value for op in request.operations],
        request.limit,
    )
    return pipeline


def process_lazy_operations(request: Union[PipelineRequest, Dict[str, Any]]) -> Dict[str, Any]:
    """Build a pipeline, drain it, and report the result with its cost"""
    try:
        if not isinstance(request, PipelineRequest):
            request = PipelineRequest.model_validate(request)
    except ValidationError as e:
        logger.error(f"Invalid pipeline request: {e.error_count()} error(s)")
        raise

    operations_applied = [op.type.value for op in request.operations]
    if request.limit is not None:
        operations_applied.append("limit")

    try:
        (result, n), info = measure_performance(
            f"{request.source.type.value} pipeline",
            lambda: p.collect(build_pipeline(request)),
        )
    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        raise

    logger.info(f"Processed {request.source.type.value} pipeline: {n} elements in {info['execution_time_ms']:.2f}ms")

    return {
        "result": result,
        "count": n,
        "operations_applied": operations_applied,
        "performance": {
            "processing_time_ms": info["execution_time_ms"],
            "memory_usage_mb": info["memory_usage_mb"],
            "output_size": n,
            "lazy_evaluation": True,
        }
    }


# ---------- Performance measurement ----------

_performance_metrics = {
    "operations": [],
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0
}


def _record(performance_info: Dict[str, Any]) -> None:
    _performance_metrics["operations"].append(performance_info)
    _performance_metrics["total_time_ms"] += performance_info["execution_time_ms"]
    _performance_metrics["total_memory_mb"] += performance_info["memory_usage_mb"]
    _performance_metrics["operation_count"] += 1


def _result_size(result: Any):
    if isinstance(result, p.Collected):
        return result.count
    return len(result) if hasattr(result, "__len__") else None


def measure_performance(operation_name: str, func, *args, **kwargs) -> Tuple[Any, Dict[str, Any]]:
    """
    Time a call and track the memory it allocates.

    Tracing that is already active (an outer measurement, or the caller's
    own tracemalloc session) is left running; only its peak is reset.
    """
    owns_trace = not tracemalloc.is_tracing()
    if owns_trace:
        tracemalloc.start()
    gc.collect()
    tracemalloc.reset_peak()
    baseline = tracemalloc.get_traced_memory()[0]
    start_time = time.perf_counter()

    def _snapshot():
        _, peak = tracemalloc.get_traced_memory()
        return (time.perf_counter() - start_time) * 1000, max(peak - baseline, 0) / 1024 / 1024

    try:
        result = func(*args, **kwargs)
    except Exception as e:
        execution_time_ms, memory_mb = _snapshot()
        _record({
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": memory_mb,
            "success": False,
            "error": str(e),
            "timestamp": time.time()
        })
        logger.warning(f"{operation_name} failed after {execution_time_ms:.2f}ms: {e}")
        raise
    else:
        execution_time_ms, memory_mb = _snapshot()
        performance_info = {
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": memory_mb,
            "success": True,
            "result_size": _result_size(result),
            "timestamp": time.time()
        }
        _record(performance_info)
        return result, performance_info
    finally:
        if owns_trace:
            tracemalloc.stop()


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all recorded measurements"""
    count = _performance_metrics["operation_count"]
    if count == 0:
        return {
            "total_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": count,
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count,
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / count
    }


def clear_performance_metrics():
    """Clear all recorded measurements"""
    global _performance_metrics
    _performance_metrics = {
        "operations": [],
        "total_time_ms": 0.0,
        "total_memory_mb": 0.0,
        "operation_count": 0
    }
