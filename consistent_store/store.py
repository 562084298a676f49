"""
File: consistent_store/store.py
Store consistente de entradas do log sobre um serviço de coordenação.

Garantias:
1. Admissão exatamente-uma-vez de entradas pendentes, via create-if-absent no
   serviço de coordenação (nenhum lock em processo)
2. Separação dos namespaces: ``unsequenced/`` só contém entradas sem número de
   sequência, ``sequenced/`` só entradas com número de sequência
3. Falhas do serviço de coordenação voltam como Status; violações de
   invariantes levantam InvariantViolation
"""
import logging
from typing import Generic, List, Type

from common.metrics import count_operation, store_metrics, time_operation
from common.models import ClusterNodeState, SignedTreeHead
from consistent_store import keys
from consistent_store.coordination import CoordinationClient
from consistent_store.entry import EntryHandle, T
from consistent_store.errors import check
from consistent_store.status import Status, StatusCode, translate_status

logger = logging.getLogger("consistent_store")


class ConsistentStore(Generic[T]):
    """
    Fachada do store. Síncrona e sem estado entre chamadas: cada operação faz no
    máximo duas idas ao serviço de coordenação e não retenta.
    """

    def __init__(self, client: CoordinationClient, root: str, node_id: str, entry_type: Type[T]):
        """
        Inicializa o store.

        Args:
            client: Cliente do serviço de coordenação, compartilhável entre chamadas.
            root: Prefixo sob o qual ficam os namespaces do store.
            node_id: Identificador deste nó no cluster.
            entry_type: Classe das entradas (implementa ``LogEntry``).
        """
        self._client = client
        self._root = keys.normalize_root(root)
        self._node_id = node_id
        self._entry_type = entry_type

        logger.info(f"ConsistentStore inicializado no nó {node_id} com raiz {self._root or '/'}",
                    extra={"node_id": node_id})

    @property
    def root(self) -> str:
        return self._root

    @property
    def node_id(self) -> str:
        return self._node_id

    def _check(self, condition: bool, expression: str, operation: str, subject=None):
        if not condition:
            store_metrics["invariant_violations"].labels(node_id=self._node_id, operation=operation).inc()
            count_operation(self._node_id, operation, None)
        check(condition, expression, subject, node_id=self._node_id)

    def _finish(self, operation: str, status: Status) -> Status:
        count_operation(self._node_id, operation, status.code.value)
        return status

    @time_operation("add_pending_entry")
    def add_pending_entry(self, entry: T) -> Status:
        """
        Submete uma entrada pendente.

        Se já existir uma entrada com o mesmo conteúdo, os campos preenchidos
        pelo log na primeira aceitação (ex.: timestamp do SCT) são copiados
        para ``entry`` e o status é ALREADY_EXISTS.

        Args:
            entry: Entrada sem número de sequência; pode ser modificada.

        Returns:
            Status: OK, ALREADY_EXISTS, ou a falha do serviço de coordenação.

        Raises:
            InvariantViolation: Se a entrada tiver número de sequência, ou se a
                entrada já gravada sob a mesma chave tiver conteúdo diferente.
        """
        operation = "add_pending_entry"
        self._check(not entry.has_sequence_number(), "!entry.has_sequence_number", operation, entry)

        key = keys.unsequenced_key(self._root, entry)
        status = self._client.create(key, entry.serialize())
        if status.ok:
            logger.debug(f"Entrada pendente criada em {key}", extra={"node_id": self._node_id})
            return self._finish(operation, Status.OK)

        if status.code != StatusCode.FAILED_PRECONDITION:
            return self._finish(operation, translate_status(status))

        # A chave já existe: relê a cópia aceita anteriormente
        get_status, stored = self._client.get(key)
        if not get_status.ok:
            return self._finish(operation, translate_status(get_status))

        try:
            preexisting_entry = self._entry_type.deserialize(stored.value)
        except ValueError as e:
            self._check(False, "preexisting_entry.deserialize()", operation, f"{key}: {e}")

        self._check(preexisting_entry.identity() == entry.identity(),
                    "preexisting_entry == entry", operation,
                    f"preexisting_entry={preexisting_entry!r} entry={entry!r}")

        entry.copy_backfilled_from(preexisting_entry)
        store_metrics["duplicate_submissions"].labels(node_id=self._node_id).inc()
        logger.debug(f"Entrada pendente já existia em {key}", extra={"node_id": self._node_id})
        return self._finish(operation, Status(StatusCode.ALREADY_EXISTS, "Pending entry already exists"))

    def _get_entries(self, operation: str, prefix: str, sequenced: bool,
                     entries: List[EntryHandle[T]]) -> Status:
        status, values = self._client.get_all(prefix)
        if not status.ok:
            return self._finish(operation, translate_status(status))

        handles = []
        for kv in values:
            try:
                handle = EntryHandle.from_stored(self._entry_type, kv.key, kv.value, kv.revision)
            except ValueError as e:
                self._check(False, "entry.deserialize()", operation, f"{kv.key}: {e}")

            if sequenced:
                self._check(handle.entry.has_sequence_number(), "entry.has_sequence_number", operation, handle)
            else:
                self._check(not handle.entry.has_sequence_number(), "!entry.has_sequence_number", operation, handle)
            handles.append(handle)

        if sequenced:
            handles.sort(key=lambda h: h.entry.sequence_number)
        entries.extend(handles)
        store_metrics["listed_entries"].labels(
            node_id=self._node_id,
            namespace=keys.SEQUENCED_DIR if sequenced else keys.UNSEQUENCED_DIR
        ).inc(len(handles))
        return self._finish(operation, Status.OK)

    @time_operation("get_pending_entries")
    def get_pending_entries(self, entries: List[EntryHandle[T]]) -> Status:
        """
        Lista as entradas pendentes, acrescentando-as a ``entries`` em ordem de chave.

        Em caso de falha, ``entries`` não é modificada.

        Raises:
            InvariantViolation: Se alguma entrada listada tiver número de sequência.
        """
        return self._get_entries("get_pending_entries", keys.unsequenced_prefix(self._root), False, entries)

    @time_operation("get_sequenced_entries")
    def get_sequenced_entries(self, entries: List[EntryHandle[T]]) -> Status:
        """
        Lista as entradas com posição atribuída, acrescentando-as a ``entries``
        em ordem crescente de número de sequência.

        Raises:
            InvariantViolation: Se alguma entrada listada não tiver número de sequência.
        """
        return self._get_entries("get_sequenced_entries", keys.sequenced_prefix(self._root), True, entries)

    @time_operation("assign_sequence_number")
    def assign_sequence_number(self, sequence_number: int, handle: EntryHandle[T]) -> Status:
        """
        Atribui a posição ``sequence_number`` a uma entrada pendente.

        A transição atômica ainda não está definida: a precondição é verificada e
        UNIMPLEMENTED é devolvido, sem alterar o handle nem o serviço de coordenação.

        Raises:
            InvariantViolation: Se a entrada do handle já tiver número de sequência.
        """
        operation = "assign_sequence_number"
        self._check(not handle.entry.has_sequence_number(), "!entry.has_sequence_number", operation, handle)
        return self._finish(operation, Status(
            StatusCode.UNIMPLEMENTED,
            f"AssignSequenceNumber para {keys.sequenced_key(self._root, sequence_number)} não implementado"
        ))

    def next_available_sequence_number(self) -> int:
        """
        Próxima posição livre do log.

        Raises:
            InvariantViolation: Sempre; o protocolo do contador não está definido.
        """
        self._check(False, "Not Implemented", "next_available_sequence_number")

    def set_serving_sth(self, sth: SignedTreeHead) -> Status:
        """Publica a STH corrente do log. Ainda não implementado."""
        return self._finish("set_serving_sth", Status(
            StatusCode.UNIMPLEMENTED,
            f"SetServingSTH em {keys.serving_sth_key(self._root)} não implementado"
        ))

    def set_cluster_node_state(self, state: ClusterNodeState) -> Status:
        """Registra a visão deste nó sobre o progresso do log. Ainda não implementado."""
        return self._finish("set_cluster_node_state", Status(
            StatusCode.UNIMPLEMENTED,
            f"SetClusterNodeState em {keys.node_state_key(self._root, self._node_id)} não implementado"
        ))
