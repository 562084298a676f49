"""
Status de domínio do store e tradução dos resultados do serviço de coordenação.
"""
from enum import Enum
from typing import Optional


class StatusCode(str, Enum):
    """Códigos canônicos de status."""
    OK = "OK"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    ABORTED = "ABORTED"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    UNIMPLEMENTED = "UNIMPLEMENTED"
    INTERNAL = "INTERNAL"
    UNAVAILABLE = "UNAVAILABLE"
    DATA_LOSS = "DATA_LOSS"


class CoordinationOutcome(str, Enum):
    """Vocabulário nativo dos clientes de coordenação."""
    CREATED = "CREATED"
    SUCCESS = "SUCCESS"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    NOT_FOUND = "NOT_FOUND"
    COMPARE_FAILED = "COMPARE_FAILED"
    UNAVAILABLE = "UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    UNKNOWN_FAILURE = "UNKNOWN_FAILURE"


class Status:
    """
    Resultado de uma operação: um código canônico e uma mensagem opcional.

    ``Status.OK`` é a instância compartilhada de sucesso.
    """
    OK: "Status"

    __slots__ = ("code", "message")

    def __init__(self, code: StatusCode = StatusCode.OK, message: str = ""):
        self.code = StatusCode(code)
        self.message = message

    @property
    def ok(self) -> bool:
        return self.code == StatusCode.OK

    @property
    def canonical_code(self) -> StatusCode:
        return self.code

    def __eq__(self, other) -> bool:
        if not isinstance(other, Status):
            return NotImplemented
        return self.code == other.code and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def __repr__(self) -> str:
        return f"Status({self.code.value}, {self.message!r})"

    def __str__(self) -> str:
        if self.message:
            return f"{self.code.value}: {self.message}"
        return self.code.value


Status.OK = Status(StatusCode.OK)


_OUTCOME_TO_CODE = {
    CoordinationOutcome.CREATED: StatusCode.OK,
    CoordinationOutcome.SUCCESS: StatusCode.OK,
    # Conflito no create; o store o converte em ALREADY_EXISTS após reler a chave
    CoordinationOutcome.ALREADY_EXISTS: StatusCode.FAILED_PRECONDITION,
    CoordinationOutcome.NOT_FOUND: StatusCode.NOT_FOUND,
    CoordinationOutcome.COMPARE_FAILED: StatusCode.FAILED_PRECONDITION,
    CoordinationOutcome.UNAVAILABLE: StatusCode.UNAVAILABLE,
    CoordinationOutcome.TIMEOUT: StatusCode.DEADLINE_EXCEEDED,
    CoordinationOutcome.UNKNOWN_FAILURE: StatusCode.UNKNOWN,
}


def translate_outcome(outcome: CoordinationOutcome, message: str = "") -> Status:
    """
    Converte um resultado nativo do serviço de coordenação em Status.

    Args:
        outcome: Resultado reportado pelo cliente de coordenação.
        message: Mensagem de diagnóstico.

    Returns:
        Status: ``Status.OK`` para CREATED, o código equivalente caso contrário.
    """
    outcome = CoordinationOutcome(outcome)
    code = _OUTCOME_TO_CODE.get(outcome, StatusCode.UNKNOWN)
    if code == StatusCode.OK:
        return Status.OK
    return Status(code, message or outcome.value)


def translate_status(status: Optional[Status]) -> Status:
    """
    Status que o store devolve ao chamador para uma falha do cliente.

    Falhas passam inalteradas; ``None`` ou objetos estranhos viram UNKNOWN.
    """
    if isinstance(status, Status):
        return status
    return Status(StatusCode.UNKNOWN, f"resultado inesperado do cliente de coordenação: {status!r}")
