"""
Testes unitários para Status e para a tradução dos resultados de coordenação.
"""
import pytest

from consistent_store.status import (
    CoordinationOutcome, Status, StatusCode, translate_outcome, translate_status
)


def test_status_ok():
    """Teste do status de sucesso compartilhado."""
    assert Status.OK.ok, "Status.OK deve ser ok"
    assert Status().ok, "O código padrão deve ser OK"
    assert Status.OK == Status(StatusCode.OK), "Status OK devem ser iguais"
    assert str(Status.OK) == "OK"


def test_status_failure():
    """Teste de um status de falha com mensagem."""
    # Arrange
    status = Status(StatusCode.UNAVAILABLE, "etcd fora do ar")

    # Assert
    assert not status.ok
    assert status.canonical_code == StatusCode.UNAVAILABLE
    assert str(status) == "UNAVAILABLE: etcd fora do ar"
    assert "UNAVAILABLE" in repr(status)
    assert status != Status(StatusCode.UNAVAILABLE, "outra mensagem"), "A mensagem faz parte da igualdade"
    assert len({status, Status(StatusCode.UNAVAILABLE, "etcd fora do ar")}) == 1, "Status iguais têm o mesmo hash"


def test_status_accepts_code_string():
    """Teste da construção a partir do valor textual do código."""
    assert Status("NOT_FOUND").code == StatusCode.NOT_FOUND

    with pytest.raises(ValueError):
        Status("NOT_A_CODE")


@pytest.mark.parametrize("outcome,expected", [
    (CoordinationOutcome.ALREADY_EXISTS, StatusCode.FAILED_PRECONDITION),
    (CoordinationOutcome.NOT_FOUND, StatusCode.NOT_FOUND),
    (CoordinationOutcome.COMPARE_FAILED, StatusCode.FAILED_PRECONDITION),
    (CoordinationOutcome.UNAVAILABLE, StatusCode.UNAVAILABLE),
    (CoordinationOutcome.TIMEOUT, StatusCode.DEADLINE_EXCEEDED),
    (CoordinationOutcome.UNKNOWN_FAILURE, StatusCode.UNKNOWN),
])
def test_translate_outcome_failures(outcome, expected):
    """Teste da tabela de tradução para resultados de falha."""
    # Act
    status = translate_outcome(outcome, "detalhe")

    # Assert
    assert status.code == expected, f"{outcome} deve virar {expected}, virou {status.code}"
    assert status.message == "detalhe", "A mensagem de diagnóstico deve ser preservada"


@pytest.mark.parametrize("outcome", [CoordinationOutcome.CREATED, CoordinationOutcome.SUCCESS])
def test_translate_outcome_success(outcome):
    """Teste de que sucessos viram Status.OK sem mensagem."""
    assert translate_outcome(outcome, "ignorada") is Status.OK


def test_translate_outcome_default_message():
    """Teste da mensagem padrão: o nome do resultado nativo."""
    assert translate_outcome(CoordinationOutcome.TIMEOUT).message == "TIMEOUT"
    assert translate_outcome("NOT_FOUND").code == StatusCode.NOT_FOUND, "O valor textual deve ser aceito"


def test_translate_status():
    """Teste do repasse de status ao chamador."""
    # Arrange
    failure = Status(StatusCode.ABORTED, "x")

    # Assert
    assert translate_status(failure) is failure, "Falhas devem passar inalteradas"
    assert translate_status(None).code == StatusCode.UNKNOWN, "None deve virar UNKNOWN"
    assert translate_status("lixo").code == StatusCode.UNKNOWN
