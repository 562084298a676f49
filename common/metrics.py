"""
Configuração de métricas Prometheus para o store consistente e os clientes de coordenação.
"""
from prometheus_client import Counter, Histogram
from functools import wraps
import time
from typing import Callable, Any, Optional


# Métricas para o ConsistentStore
store_metrics = {
    "operations": Counter(
        "consistent_store_operations_total",
        "Número total de operações do store, por status retornado",
        ["node_id", "operation", "status"]
    ),
    "duplicate_submissions": Counter(
        "consistent_store_duplicate_submissions_total",
        "Número de submissões pendentes que já existiam",
        ["node_id"]
    ),
    "invariant_violations": Counter(
        "consistent_store_invariant_violations_total",
        "Número de violações de invariantes detectadas (fatais)",
        ["node_id", "operation"]
    ),
    "listed_entries": Counter(
        "consistent_store_listed_entries_total",
        "Número de entradas devolvidas pelas listagens",
        ["node_id", "namespace"]
    ),
    "operation_duration": Histogram(
        "consistent_store_operation_duration_seconds",
        "Duração das operações do store",
        ["node_id", "operation"]
    )
}


# Métricas para os clientes de coordenação
coordination_metrics = {
    "requests": Counter(
        "coordination_client_requests_total",
        "Número de requisições ao serviço de coordenação",
        ["backend", "method", "outcome"]
    ),
    "retries": Counter(
        "coordination_client_retries_total",
        "Número de retentativas por falha de transporte",
        ["backend", "method"]
    )
}


def time_operation(operation: str) -> Callable:
    """
    Decorador para medir a duração de um método do store.

    O método decorado deve pertencer a um objeto com atributo ``node_id``.

    Args:
        operation: Nome da operação usado como rótulo.

    Returns:
        Decorador configurado.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            try:
                return func(self, *args, **kwargs)
            finally:
                duration = time.time() - start_time
                store_metrics["operation_duration"].labels(
                    node_id=self.node_id,
                    operation=operation
                ).observe(duration)
        return wrapper
    return decorator


def count_operation(node_id: str, operation: str, status: Optional[str]):
    """Incrementa o contador de operações do store."""
    store_metrics["operations"].labels(
        node_id=node_id,
        operation=operation,
        status=status or "HALTED"
    ).inc()
