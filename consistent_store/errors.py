"""
Erros do store consistente.

Duas classes de erro são mantidas separadas:

- falhas do serviço de coordenação viram ``Status`` e são devolvidas ao chamador;
- violações de invariantes do modelo de dados levantam ``InvariantViolation``,
  que deriva de ``BaseException`` para não ser capturada por ``except Exception``.
"""
import logging
from typing import Any, Optional

logger = logging.getLogger("consistent_store")


class InvariantViolation(BaseException):
    """
    Violação de invariante: o processo deve parar.

    Attributes:
        condition: Condição que deveria ser verdadeira (ex.: ``"!entry.has_sequence_number"``).
        detail: Descrição do objeto envolvido.
    """

    def __init__(self, condition: str, detail: str = ""):
        self.condition = condition
        self.detail = detail
        message = f"Check failed: {condition}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CoordinationError(Exception):
    """Uso inválido de um cliente de coordenação (ex.: chave malformada)."""


def check(condition: bool, expression: str, subject: Optional[Any] = None, node_id: Optional[str] = None):
    """
    Garante uma invariante; se falsa, registra em CRITICAL e levanta InvariantViolation.

    Args:
        condition: Valor da invariante.
        expression: Texto da invariante, incluído na mensagem.
        subject: Objeto envolvido (entrada, handle), descrito no diagnóstico.
        node_id: ID do nó, anexado ao registro de log.

    Raises:
        InvariantViolation: Se ``condition`` for falsa.
    """
    if condition:
        return
    detail = repr(subject) if subject is not None else ""
    logger.critical(
        f"Invariante violada: {expression}",
        extra={"node_id": node_id, "context": {"condition": expression, "subject": detail}}
    )
    raise InvariantViolation(expression, detail)
