"""
Testes para o cliente de coordenação local e para o store rodando sobre ele.
"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from common.models import LoggedCertificate
from consistent_store import (
    ConsistentStore, CoordinationError, InvariantViolation, MemoryCoordinationClient, StatusCode
)

ROOT = "/root"


def test_create_if_absent(memory_client):
    """Teste do create: a segunda criação da mesma chave falha."""
    # Act
    first = memory_client.create("/root/a", "1")
    second = memory_client.create("/root/a", "2")

    # Assert
    assert first.ok, "A primeira criação deve ter sucesso"
    assert second.code == StatusCode.FAILED_PRECONDITION, "Chave existente deve dar FAILED_PRECONDITION"
    status, kv = memory_client.get("/root/a")
    assert status.ok and kv.value == "1", "O valor original deve ser mantido"


def test_get_missing_key(memory_client):
    """Teste da leitura de uma chave inexistente."""
    status, kv = memory_client.get("/root/missing")

    assert status.code == StatusCode.NOT_FOUND
    assert kv is None


def test_revisions_are_global_and_monotonic(memory_client):
    """Teste do contador de revisão compartilhado pelo keyspace."""
    # Arrange
    memory_client.create("/root/a", "1")
    memory_client.create("/root/b", "2")

    # Act
    _, a = memory_client.get("/root/a")
    _, b = memory_client.get("/root/b")

    # Assert
    assert b.revision > a.revision > 0


def test_get_all_by_prefix_sorted(memory_client):
    """Teste da listagem por prefixo, ordenada por chave."""
    # Arrange
    memory_client.create("/root/x/b", "b")
    memory_client.create("/root/x/a", "a")
    memory_client.create("/root/y/c", "c")

    # Act
    status, values = memory_client.get_all("/root/x/")

    # Assert
    assert status.ok
    assert [kv.key for kv in values] == ["/root/x/a", "/root/x/b"]


def test_get_all_empty_prefix(memory_client):
    """Teste da listagem de um prefixo sem chaves."""
    status, values = memory_client.get_all("/nothing/")

    assert status.ok
    assert values == []


def test_update_compare_and_swap(memory_client):
    """Teste do compare-and-swap por revisão."""
    # Arrange
    memory_client.create("/root/a", "1")
    _, kv = memory_client.get("/root/a")

    # Act
    stale_status, current = memory_client.update("/root/a", "x", kv.revision + 100)
    status, new_revision = memory_client.update("/root/a", "2", kv.revision)

    # Assert
    assert stale_status.code == StatusCode.FAILED_PRECONDITION, "Revisão divergente deve falhar"
    assert current == kv.revision, "A revisão atual deve ser informada"
    assert status.ok
    assert new_revision > kv.revision
    assert memory_client.get("/root/a")[1].value == "2"

    missing, _ = memory_client.update("/root/missing", "x", 1)
    assert missing.code == StatusCode.NOT_FOUND


def test_delete_compare_and_swap(memory_client):
    """Teste da remoção condicional."""
    # Arrange
    memory_client.create("/root/a", "1")
    _, kv = memory_client.get("/root/a")

    # Act & Assert
    assert memory_client.delete("/root/a", kv.revision + 1).code == StatusCode.FAILED_PRECONDITION
    assert memory_client.delete("/root/a", kv.revision).ok
    assert memory_client.get("/root/a")[0].code == StatusCode.NOT_FOUND
    assert memory_client.delete("/root/a", kv.revision).code == StatusCode.NOT_FOUND


@pytest.mark.parametrize("key", ["", "relative", "root/a"])
def test_invalid_keys(memory_client, key):
    """Teste de chaves malformadas."""
    with pytest.raises(CoordinationError):
        memory_client.create(key, "v")


def test_file_persistence(tmp_path):
    """Teste da persistência em arquivo, incluindo o contador de revisão."""
    # Arrange
    path = str(tmp_path / "coordination.json")
    with MemoryCoordinationClient(path) as client:
        client.create("/root/a", "1")
        _, before = client.get("/root/a")

    # Act
    with MemoryCoordinationClient(path) as client:
        status, after = client.get("/root/a")
        client.create("/root/b", "2")
        _, other = client.get("/root/b")

    # Assert
    assert status.ok and after == before, "O valor deve sobreviver à reabertura"
    assert other.revision > before.revision, "A revisão deve continuar de onde parou"


def test_revision_survives_delete_and_reopen(tmp_path):
    """Teste de que revisões consumidas por chaves removidas não são reutilizadas após reabrir."""
    # Arrange
    path = str(tmp_path / "coordination.json")
    with MemoryCoordinationClient(path) as client:
        client.create("/r/a", "1")
        _, stale = client.get("/r/a")
        assert client.delete("/r/a", stale.revision).ok

    # Act
    with MemoryCoordinationClient(path) as client:
        client.create("/r/a", "2")
        _, fresh = client.get("/r/a")
        status, _ = client.update("/r/a", "sobrescrito", stale.revision)

    # Assert
    assert fresh.revision > stale.revision + 1, "A nova chave deve ter revisão posterior à remoção"
    assert status.code == StatusCode.FAILED_PRECONDITION, "Revisão antiga não pode vencer o compare-and-swap"


def test_store_admission_is_idempotent(memory_store, cert_factory):
    """Teste da admissão exatamente-uma-vez sobre o cliente local."""
    # Arrange
    first = cert_factory(1000, "same")
    second = cert_factory(2000, "same")

    # Act
    first_status = memory_store.add_pending_entry(first)
    second_status = memory_store.add_pending_entry(second)
    entries = []
    list_status = memory_store.get_pending_entries(entries)

    # Assert
    assert first_status.ok, "A primeira submissão deve ser aceita"
    assert second_status.code == StatusCode.ALREADY_EXISTS, "A repetição deve dar ALREADY_EXISTS"
    assert second.timestamp == 1000, "A repetição deve herdar o timestamp aceito"
    assert list_status.ok
    assert len(entries) == 1, "Deve haver uma única entrada pendente"
    assert entries[0].entry.timestamp == 1000


def test_store_concurrent_admission(memory_store, cert_factory):
    """Teste de submissões concorrentes do mesmo conteúdo: exatamente uma é aceita."""
    # Arrange
    certs = [cert_factory(ts, "concurrent") for ts in range(1, 17)]

    # Act
    with ThreadPoolExecutor(max_workers=8) as executor:
        statuses = list(executor.map(memory_store.add_pending_entry, certs))

    # Assert
    codes = [status.code for status in statuses]
    assert codes.count(StatusCode.OK) == 1, f"Exatamente uma submissão deve ser aceita: {codes}"
    assert codes.count(StatusCode.ALREADY_EXISTS) == len(certs) - 1
    winner = certs[codes.index(StatusCode.OK)]
    assert all(cert.timestamp == winner.timestamp for cert in certs), "Todas devem ver o mesmo timestamp"


def test_store_lists_distinct_entries(memory_store, cert_factory):
    """Teste da listagem de várias entradas pendentes distintas."""
    # Arrange
    for body in ("a", "b", "c"):
        memory_store.add_pending_entry(cert_factory(1, body))

    # Act
    entries = []
    status = memory_store.get_pending_entries(entries)

    # Assert
    assert status.ok
    assert sorted(e.entry.leaf_certificate for e in entries) == ["a", "b", "c"]
    assert [e.key for e in entries] == sorted(e.key for e in entries), "A listagem deve vir ordenada por chave"


def test_store_sequenced_namespace_violation(memory_client, cert_factory):
    """Teste de entrada pendente gravada no namespace de sequenciadas."""
    # Arrange
    store = ConsistentStore(memory_client, ROOT, "node_id", LoggedCertificate)
    memory_client.create(f"{ROOT}/sequenced/0", cert_factory().serialize())

    # Act & Assert
    with pytest.raises(InvariantViolation):
        store.get_sequenced_entries([])


def test_store_sequenced_entries(memory_client, sequenced_cert_factory):
    """Teste da listagem de entradas sequenciadas gravadas diretamente."""
    # Arrange
    store = ConsistentStore(memory_client, ROOT, "node_id", LoggedCertificate)
    for seq in range(3):
        memory_client.create(f"{ROOT}/sequenced/{seq}", sequenced_cert_factory(seq, f"e{seq}", seq).serialize())

    # Act
    entries = []
    status = store.get_sequenced_entries(entries)

    # Assert
    assert status.ok
    assert sorted(e.entry.sequence_number for e in entries) == [0, 1, 2]


class SlashHashCertificate(LoggedCertificate):
    """Certificado cujo hash, em base64, começa com barras."""

    def content_hash(self) -> bytes:
        return b"\xff\xff\xff" + super().content_hash()


def test_store_with_slashes_in_hash(memory_client):
    """Teste de hash com ``/`` em base64: admissão e listagem continuam funcionando."""
    # Arrange
    store = ConsistentStore(memory_client, ROOT, "node_id", SlashHashCertificate)
    first = SlashHashCertificate(sct_timestamp=1000, leaf_certificate="barras")
    second = SlashHashCertificate(sct_timestamp=2000, leaf_certificate="barras")

    # Act
    first_status = store.add_pending_entry(first)
    second_status = store.add_pending_entry(second)
    entries = []
    list_status = store.get_pending_entries(entries)

    # Assert
    assert first_status.ok
    assert second_status.code == StatusCode.ALREADY_EXISTS
    assert second.timestamp == 1000
    assert list_status.ok
    assert len(entries) == 1
    assert entries[0].key.startswith(f"{ROOT}/unsequenced/////"), f"Chave inesperada: {entries[0].key}"


def test_store_sequenced_entries_numeric_order(memory_client, sequenced_cert_factory):
    """Teste da ordem numérica das sequenciadas, mesmo com chaves fora da ordem textual."""
    # Arrange
    store = ConsistentStore(memory_client, ROOT, "node_id", LoggedCertificate)
    for seq in (2, 10, 1):
        memory_client.create(f"{ROOT}/sequenced/{seq}", sequenced_cert_factory(seq, f"e{seq}", seq).serialize())

    # Act
    entries = []
    status = store.get_sequenced_entries(entries)

    # Assert
    assert status.ok
    assert [e.entry.sequence_number for e in entries] == [1, 2, 10]


def test_store_relative_root(memory_client, cert_factory):
    """Teste de raiz sem barra inicial com o cliente local: nenhuma exceção de chave."""
    # Arrange
    store = ConsistentStore(memory_client, "ct", "node_id", LoggedCertificate)

    # Act
    status = store.add_pending_entry(cert_factory())
    entries = []
    store.get_pending_entries(entries)

    # Assert
    assert status.ok
    assert len(entries) == 1 and entries[0].key.startswith("/ct/unsequenced/")
