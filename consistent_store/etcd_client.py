"""
Cliente do etcd (API de chaves v2) para o store consistente.

Mapeamento das operações:

- create:  PUT    /v2/keys<key>?prevExist=false
- get:     GET    /v2/keys<key>
- get_all: GET    /v2/keys<prefix>?recursive=true&sorted=true
- update:  PUT    /v2/keys<key>?prevIndex=<revision>
- delete:  DELETE /v2/keys<key>?prevIndex=<revision>

A revisão de uma chave é o ``modifiedIndex`` do etcd. Falhas de transporte
são retentadas aqui, com backoff exponencial; o store nunca retenta.
"""
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from common.metrics import coordination_metrics
from consistent_store.coordination import CoordinationClient, KeyValue, validate_key
from consistent_store.status import CoordinationOutcome, Status, translate_outcome

log = structlog.get_logger(__name__)

# Códigos de erro do etcd v2
ETCD_KEY_NOT_FOUND = 100
ETCD_TEST_FAILED = 101
ETCD_NODE_EXIST = 105

_ERROR_OUTCOMES = {
    ETCD_KEY_NOT_FOUND: CoordinationOutcome.NOT_FOUND,
    ETCD_TEST_FAILED: CoordinationOutcome.COMPARE_FAILED,
    ETCD_NODE_EXIST: CoordinationOutcome.ALREADY_EXISTS,
}


def _is_connect_failure(exc: BaseException) -> bool:
    # A requisição não chegou ao servidor; reenviar uma escrita é seguro
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


def _is_transport_failure(exc: BaseException) -> bool:
    return isinstance(exc, httpx.TransportError)


def flatten_nodes(node: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Achata a árvore de nós devolvida por uma leitura recursiva.

    Args:
        node: Nó do etcd (diretório ou folha).

    Returns:
        List[Dict[str, Any]]: Folhas, em ordem de travessia.
    """
    if not node.get("dir"):
        return [node]
    leaves = []
    for child in node.get("nodes", []):
        leaves.extend(flatten_nodes(child))
    return leaves


class EtcdClient(CoordinationClient):
    """
    Cliente HTTP síncrono para um endpoint do etcd.

    Características:
    1. Timeouts configuráveis por requisição
    2. Conexões keep-alive via httpx.Client
    3. Retentativa com backoff para falhas de transporte (tenacity)
    """
    BACKEND = "etcd"

    def __init__(self, endpoint: str, timeout: float = 5.0, max_attempts: int = 3,
                 backoff_base: float = 0.1, backoff_max: float = 2.0,
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Inicializa o cliente.

        Args:
            endpoint: URL base do etcd (ex.: http://etcd-1:2379)
            timeout: Timeout de cada requisição em segundos
            max_attempts: Número máximo de tentativas por operação
            backoff_base: Espera inicial entre tentativas em segundos
            backoff_max: Espera máxima entre tentativas em segundos
            transport: Transporte httpx alternativo (usado em testes)
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.client = httpx.Client(base_url=self.endpoint, timeout=timeout, transport=transport)

    def close(self):
        self.client.close()

    def _url(self, key: str) -> str:
        # O etcd limpa caminhos com barras repetidas; a URL já vai na forma limpa
        return "/v2/keys" + re.sub("/+", "/", key)

    def _send(self, method: str, operation: str, key: str, idempotent: bool,
              params: Optional[Dict[str, str]] = None,
              data: Optional[Dict[str, str]] = None) -> Tuple[Optional[CoordinationOutcome], Optional[httpx.Response], str]:
        """
        Envia uma requisição, retentando falhas de transporte.

        Leituras são retentadas em qualquer falha de transporte; escritas apenas
        quando a conexão não foi estabelecida.

        Returns:
            Tupla (outcome de falha ou None, resposta, mensagem).
        """
        def before_sleep(retry_state):
            coordination_metrics["retries"].labels(backend=self.BACKEND, method=operation).inc()
            log.warning("etcd request failed, retrying",
                        operation=operation,
                        key=key,
                        attempt=retry_state.attempt_number,
                        error=str(retry_state.outcome.exception()))

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base, max=self.backoff_max),
            retry=retry_if_exception(_is_transport_failure if idempotent else _is_connect_failure),
            before_sleep=before_sleep,
            reraise=True,
        )

        try:
            response = retrying(
                self.client.request,
                method,
                self._url(key),
                params=params,
                data=data,
            )
        except httpx.TimeoutException as e:
            return CoordinationOutcome.TIMEOUT, None, f"etcd timeout em {operation} {key}: {e}"
        except httpx.TransportError as e:
            return CoordinationOutcome.UNAVAILABLE, None, f"etcd indisponível em {operation} {key}: {e}"

        return None, response, ""

    def _error(self, response: httpx.Response) -> Tuple[CoordinationOutcome, str]:
        """Traduz uma resposta de erro do etcd."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        error_code = body.get("errorCode") if isinstance(body, dict) else None
        message = body.get("message", "") if isinstance(body, dict) else ""
        cause = body.get("cause", "") if isinstance(body, dict) else ""
        detail = f"{message} ({cause})" if cause else message or f"HTTP {response.status_code}"

        if error_code in _ERROR_OUTCOMES:
            return _ERROR_OUTCOMES[error_code], detail
        if response.status_code >= 500:
            return CoordinationOutcome.UNAVAILABLE, detail
        return CoordinationOutcome.UNKNOWN_FAILURE, detail

    def _node(self, response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            body = response.json()
        except ValueError:
            return None
        node = body.get("node") if isinstance(body, dict) else None
        return node if isinstance(node, dict) else None

    def _record(self, method: str, outcome: CoordinationOutcome, message: str = "") -> Status:
        coordination_metrics["requests"].labels(
            backend=self.BACKEND,
            method=method,
            outcome=outcome.value
        ).inc()
        if outcome not in (CoordinationOutcome.CREATED, CoordinationOutcome.SUCCESS):
            log.debug("etcd request failed", operation=method, outcome=outcome.value, detail=message)
        return translate_outcome(outcome, message)

    def create(self, key: str, value: str) -> Status:
        validate_key(key)
        failure, response, message = self._send(
            "PUT", "create", key, idempotent=False,
            params={"prevExist": "false"},
            data={"value": value},
        )
        if failure is not None:
            return self._record("create", failure, message)
        if response.is_success:
            return self._record("create", CoordinationOutcome.CREATED)
        return self._record("create", *self._error(response))

    def get(self, key: str) -> Tuple[Status, Optional[KeyValue]]:
        validate_key(key)
        failure, response, message = self._send("GET", "get", key, idempotent=True)
        if failure is not None:
            return self._record("get", failure, message), None
        if not response.is_success:
            return self._record("get", *self._error(response)), None

        node = self._node(response)
        if node is None or node.get("dir") or "value" not in node:
            return self._record("get", CoordinationOutcome.UNKNOWN_FAILURE, f"resposta inesperada para {key}"), None

        self._record("get", CoordinationOutcome.SUCCESS)
        return Status.OK, KeyValue(key=node["key"], value=node["value"], revision=node["modifiedIndex"])

    def get_all(self, prefix: str) -> Tuple[Status, List[KeyValue]]:
        validate_key(prefix)
        failure, response, message = self._send(
            "GET", "get_all", prefix, idempotent=True,
            params={"recursive": "true", "sorted": "true"},
        )
        if failure is not None:
            return self._record("get_all", failure, message), []
        if not response.is_success:
            outcome, detail = self._error(response)
            if outcome == CoordinationOutcome.NOT_FOUND:
                # Diretório ainda não criado: nenhum valor sob o prefixo
                self._record("get_all", CoordinationOutcome.SUCCESS)
                return Status.OK, []
            return self._record("get_all", outcome, detail), []

        node = self._node(response)
        if node is None:
            return self._record("get_all", CoordinationOutcome.UNKNOWN_FAILURE, f"resposta inesperada para {prefix}"), []

        values = [
            KeyValue(key=leaf["key"], value=leaf.get("value", ""), revision=leaf["modifiedIndex"])
            for leaf in flatten_nodes(node)
        ]
        self._record("get_all", CoordinationOutcome.SUCCESS)
        return Status.OK, sorted(values, key=lambda kv: kv.key)

    def update(self, key: str, value: str, revision: int) -> Tuple[Status, int]:
        validate_key(key)
        failure, response, message = self._send(
            "PUT", "update", key, idempotent=False,
            params={"prevIndex": str(revision)},
            data={"value": value},
        )
        if failure is not None:
            return self._record("update", failure, message), 0
        if not response.is_success:
            return self._record("update", *self._error(response)), 0

        node = self._node(response) or {}
        self._record("update", CoordinationOutcome.SUCCESS)
        return Status.OK, node.get("modifiedIndex", 0)

    def delete(self, key: str, revision: int) -> Status:
        validate_key(key)
        failure, response, message = self._send(
            "DELETE", "delete", key, idempotent=False,
            params={"prevIndex": str(revision)},
        )
        if failure is not None:
            return self._record("delete", failure, message)
        if not response.is_success:
            return self._record("delete", *self._error(response))
        return self._record("delete", CoordinationOutcome.SUCCESS)
