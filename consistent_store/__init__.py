"""
Store consistente de entradas para um log no estilo certificate transparency.

O store fica entre o log e um serviço de coordenação chave-valor distribuído
(etcd), e dá ao log uma visão linearizável de quais entradas foram submetidas,
quais já receberam posição e o que cada nó do cluster sabe sobre o progresso
do log.

Responsabilidades principais:
- Admitir entradas pendentes exatamente uma vez, pela chave do hash do conteúdo
- Listar entradas pendentes e sequenciadas, garantindo a separação dos namespaces
- Traduzir os resultados do serviço de coordenação em status do log
- Parar o processo em violações de invariantes, em vez de devolver erros comuns
"""
from typing import Any, Dict, Optional, Type

from common.models import LoggedCertificate
from consistent_store.coordination import CoordinationClient, KeyValue, MemoryCoordinationClient
from consistent_store.entry import EntryHandle, LogEntry
from consistent_store.errors import CoordinationError, InvariantViolation
from consistent_store.status import CoordinationOutcome, Status, StatusCode
from consistent_store.store import ConsistentStore

__version__ = "1.0.0"


def build_client(config: Dict[str, Any]) -> CoordinationClient:
    """
    Cria o cliente de coordenação descrito em ``config["coordination"]``.

    Raises:
        ValueError: Se o backend for desconhecido.
    """
    coordination = config["coordination"]
    backend = coordination.get("backend", "etcd")

    if backend == "memory":
        return MemoryCoordinationClient(coordination.get("memory", {}).get("path"))

    if backend == "etcd":
        from consistent_store.etcd_client import EtcdClient

        etcd = coordination.get("etcd", {})
        retry = coordination.get("retry", {})
        return EtcdClient(
            etcd["endpoint"],
            timeout=etcd.get("timeout", 5.0),
            max_attempts=retry.get("maxAttempts", 3),
            backoff_base=retry.get("backoffBase", 0.1),
            backoff_max=retry.get("backoffMax", 2.0),
        )

    raise ValueError(f"Backend de coordenação desconhecido: {backend}")


def build_store(config: Dict[str, Any], client: Optional[CoordinationClient] = None,
                entry_type: Type = LoggedCertificate) -> ConsistentStore:
    """
    Monta um ConsistentStore a partir da configuração carregada por ``load_config``.

    Args:
        config: Configuração completa.
        client: Cliente já criado; se ausente, um é criado com ``build_client``.
        entry_type: Classe das entradas do log.
    """
    if client is None:
        client = build_client(config)
    return ConsistentStore(client, config["store"]["root"], str(config["node"]["id"]), entry_type)


__all__ = [
    "ConsistentStore",
    "CoordinationClient",
    "CoordinationError",
    "CoordinationOutcome",
    "EntryHandle",
    "InvariantViolation",
    "KeyValue",
    "LogEntry",
    "MemoryCoordinationClient",
    "Status",
    "StatusCode",
    "build_client",
    "build_store",
]
