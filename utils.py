"""
Utility functions for lazy sequence pipelines

Logging setup, performance measurement of pipeline runs, and building a
pipeline from a list of operation descriptors.
"""

import gc
import logging
import os
import sys
import time
import tracemalloc
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

import psutil

from lazy import LazySequence, stream_from
from models import OperationSpec, OperationType, PipelineConfig

logger = logging.getLogger(__name__)


# ---------- Logging Setup ----------

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup structured logging for pipeline runs"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger('lazy')


# ---------- Performance Metrics ----------

@dataclass
class PerformanceRegistry:
    """Running totals of measured pipeline runs"""
    operations: List[Dict[str, Any]] = field(default_factory=list)
    total_time_ms: float = 0.0
    total_memory_mb: float = 0.0

    @property
    def operation_count(self) -> int:
        return len(self.operations)

    def record(self, performance_info: Dict[str, Any]) -> None:
        self.operations.append(performance_info)
        self.total_time_ms += performance_info["execution_time_ms"]
        self.total_memory_mb += performance_info["memory_usage_mb"]

    def reset(self) -> None:
        self.operations = []
        self.total_time_ms = 0.0
        self.total_memory_mb = 0.0


_registry = PerformanceRegistry()


def _current_rss_mb() -> float:
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024


def measure_performance(operation_name: str, func, *args, **kwargs) -> Dict[str, Any]:
    """Measure a function call with timing and memory tracking.

    The returned record holds the call's result under "result". Failures
    are recorded too and then re-raised.
    """
    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)
    except Exception as e:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()
        tracemalloc.stop()
        _registry.record({
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": peak / 1024 / 1024,
            "rss_mb": _current_rss_mb(),
            "success": False,
            "error": str(e),
            "timestamp": time.time()
        })
        logger.error(f"{operation_name} failed after {execution_time_ms:.2f}ms: {e}")
        raise

    execution_time_ms = (time.perf_counter() - start_time) * 1000
    _, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    performance_info = {
        "operation": operation_name,
        "execution_time_ms": execution_time_ms,
        "memory_usage_mb": peak / 1024 / 1024,
        "rss_mb": _current_rss_mb(),
        "success": True,
        "result_size": len(result) if hasattr(result, "__len__") else None,
        "timestamp": time.time()
    }
    _registry.record(performance_info)
    logger.debug(f"{operation_name} took {execution_time_ms:.2f}ms")

    return dict(performance_info, result=result)


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    count = _registry.operation_count
    if count == 0:
        return {
            "total_operations": 0,
            "failed_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": count,
        "failed_operations": sum(1 for op in _registry.operations if not op["success"]),
        "total_time_ms": _registry.total_time_ms,
        "total_memory_mb": _registry.total_memory_mb,
        "avg_time_ms": _registry.total_time_ms / count,
        "avg_memory_mb": _registry.total_memory_mb / count
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    _registry.reset()


# ---------- Pipelines From Descriptors ----------

def build_pipeline(source: Union[Iterable[Any], LazySequence],
                   operations: List[Union[OperationSpec, Dict[str, Any]]],
                   config: Optional[PipelineConfig] = None) -> LazySequence:
    """Apply a list of operation descriptors to a source, lazily.

    Each descriptor is an OperationSpec or a dict accepted by it, e.g.
    {"type": "filter", "function": is_even} or {"type": "take", "count": 3}.
    Nothing is pulled from the source.
    """
    if isinstance(source, LazySequence):
        seq = source
    else:
        seq = stream_from(source, config=config)

    for op in operations:
        spec = op if isinstance(op, OperationSpec) else OperationSpec.model_validate(op)

        if spec.type == OperationType.MAP:
            seq = seq.map(spec.function)
        elif spec.type == OperationType.FILTER:
            seq = seq.filter(spec.function)
        elif spec.type == OperationType.TAKE:
            seq = seq.take(spec.count)
        elif spec.type == OperationType.SKIP:
            seq = seq.skip(spec.count)
        elif spec.type == OperationType.BATCH:
            seq = seq.batch(spec.size)
        elif spec.type == OperationType.GROUP_BY:
            seq = seq.group_by(spec.function)

    logger.debug(f"Built pipeline with {len(operations)} operations")
    return seq
