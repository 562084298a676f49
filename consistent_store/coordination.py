"""
Interface do cliente do serviço de coordenação e uma implementação local baseada em TinyDB.

O store depende apenas de ``CoordinationClient``. A implementação local
(``MemoryCoordinationClient``) oferece a mesma semântica de escrita
condicional do etcd: create-if-absent e compare-and-swap por revisão, com
um contador de revisão único para todo o keyspace.
"""
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import structlog
from pydantic import BaseModel
from tinydb import TinyDB, Query
from tinydb.storages import MemoryStorage

from common.metrics import coordination_metrics
from consistent_store.errors import CoordinationError
from consistent_store.status import CoordinationOutcome, Status, translate_outcome

log = structlog.get_logger(__name__)


class KeyValue(BaseModel):
    """Valor armazenado sob uma chave, com a revisão da última modificação."""
    key: str
    value: str
    revision: int


def validate_key(key: str):
    """
    Chaves são caminhos absolutos: começam com ``/``.

    Componentes vazios são aceitos, pois um hash em base64 pode conter ``//``.

    Raises:
        CoordinationError: Se a chave for malformada.
    """
    if not key or not key.startswith("/"):
        raise CoordinationError(f"Chave inválida: {key!r}")


class CoordinationClient(ABC):
    """
    Operações consumidas pelo store. Falhas de execução são devolvidas como Status.
    """

    @abstractmethod
    def create(self, key: str, value: str) -> Status:
        """
        Cria a chave apenas se ela não existir.

        Returns:
            Status: OK, ou FAILED_PRECONDITION se a chave já existir.
        """

    @abstractmethod
    def get(self, key: str) -> Tuple[Status, Optional[KeyValue]]:
        """Lê o valor e a revisão atuais de uma chave."""

    @abstractmethod
    def get_all(self, prefix: str) -> Tuple[Status, List[KeyValue]]:
        """Lista todos os valores sob um prefixo, ordenados por chave."""

    @abstractmethod
    def update(self, key: str, value: str, revision: int) -> Tuple[Status, int]:
        """
        Compare-and-swap: grava se a revisão atual for ``revision``.

        Returns:
            Tupla (status, nova revisão). Revisão divergente dá FAILED_PRECONDITION.
        """

    @abstractmethod
    def delete(self, key: str, revision: int) -> Status:
        """Remove a chave se a revisão atual for ``revision``."""

    def close(self):
        """Libera recursos do cliente."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class MemoryCoordinationClient(CoordinationClient):
    """
    Serviço de coordenação local, para execução em um único processo e testes.

    Características:
    1. Persistência em TinyDB (memória por padrão, ou arquivo JSON)
    2. Escritas condicionais serializadas por um RLock
    3. Revisão global monotônica, como o índice do etcd
    """
    BACKEND = "memory"

    def __init__(self, path: Optional[str] = None):
        """
        Inicializa o cliente.

        Args:
            path: Arquivo JSON do TinyDB. Sem caminho, os dados ficam em memória.
        """
        self.path = path
        self.db = TinyDB(path) if path else TinyDB(storage=MemoryStorage)
        self.table = self.db.table("keys")
        self.meta = self.db.table("meta")
        self.lock = threading.RLock()
        # O contador persistido cobre revisões consumidas por chaves já removidas
        stored = self.meta.get(Query().name == "revision")
        self.revision = max(
            max((doc["revision"] for doc in self.table.all()), default=0),
            stored["value"] if stored else 0
        )

        log.debug("memory coordination client ready", path=path, revision=self.revision)

    def close(self):
        self.db.close()

    def _outcome(self, method: str, outcome: CoordinationOutcome, message: str = "") -> Status:
        coordination_metrics["requests"].labels(
            backend=self.BACKEND,
            method=method,
            outcome=outcome.value
        ).inc()
        return translate_outcome(outcome, message)

    def _next_revision(self) -> int:
        # Chamado sempre sob self.lock
        self.revision += 1
        self.meta.upsert({"name": "revision", "value": self.revision}, Query().name == "revision")
        return self.revision

    def _find(self, key: str) -> Optional[dict]:
        Key = Query()
        return self.table.get(Key.key == key)

    def create(self, key: str, value: str) -> Status:
        validate_key(key)
        with self.lock:
            if self._find(key) is not None:
                log.debug("create conflict", key=key)
                return self._outcome("create", CoordinationOutcome.ALREADY_EXISTS, f"Key already exists: {key}")

            revision = self._next_revision()
            self.table.insert({"key": key, "value": value, "revision": revision})

        log.debug("key created", key=key, revision=revision)
        return self._outcome("create", CoordinationOutcome.CREATED)

    def get(self, key: str) -> Tuple[Status, Optional[KeyValue]]:
        validate_key(key)
        with self.lock:
            doc = self._find(key)

        if doc is None:
            return self._outcome("get", CoordinationOutcome.NOT_FOUND, f"Key not found: {key}"), None

        self._outcome("get", CoordinationOutcome.SUCCESS)
        return Status.OK, KeyValue(**doc)

    def get_all(self, prefix: str) -> Tuple[Status, List[KeyValue]]:
        validate_key(prefix)
        Key = Query()
        with self.lock:
            docs = self.table.search(Key.key.test(lambda k: k.startswith(prefix)))

        self._outcome("get_all", CoordinationOutcome.SUCCESS)
        return Status.OK, sorted((KeyValue(**doc) for doc in docs), key=lambda kv: kv.key)

    def update(self, key: str, value: str, revision: int) -> Tuple[Status, int]:
        validate_key(key)
        Key = Query()
        with self.lock:
            doc = self._find(key)
            if doc is None:
                return self._outcome("update", CoordinationOutcome.NOT_FOUND, f"Key not found: {key}"), 0
            if doc["revision"] != revision:
                return self._outcome(
                    "update",
                    CoordinationOutcome.COMPARE_FAILED,
                    f"Compare failed: [{revision} != {doc['revision']}]"
                ), doc["revision"]

            new_revision = self._next_revision()
            self.table.update({"value": value, "revision": new_revision}, Key.key == key)

        log.debug("key updated", key=key, revision=new_revision)
        return self._outcome("update", CoordinationOutcome.SUCCESS), new_revision

    def delete(self, key: str, revision: int) -> Status:
        validate_key(key)
        Key = Query()
        with self.lock:
            doc = self._find(key)
            if doc is None:
                return self._outcome("delete", CoordinationOutcome.NOT_FOUND, f"Key not found: {key}")
            if doc["revision"] != revision:
                return self._outcome(
                    "delete",
                    CoordinationOutcome.COMPARE_FAILED,
                    f"Compare failed: [{revision} != {doc['revision']}]"
                )

            self.table.remove(Key.key == key)
            self._next_revision()

        log.debug("key deleted", key=key)
        return self._outcome("delete", CoordinationOutcome.SUCCESS)
