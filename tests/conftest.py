"""
Configuração global para testes.
Contém fixtures compartilhadas entre os testes do store e dos clientes de coordenação.
"""
import logging
from unittest.mock import MagicMock

import pytest
import structlog

from common.models import LoggedCertificate, LogEntryType
from consistent_store import ConsistentStore, MemoryCoordinationClient
from consistent_store.coordination import CoordinationClient

ROOT = "/root"
NODE_ID = "node_id"
TIMESTAMP = 9000


def make_cert(timestamp: int = TIMESTAMP, body: str = "leaf") -> LoggedCertificate:
    """Certificado X.509 pendente."""
    return LoggedCertificate(
        sct_timestamp=timestamp,
        entry_type=LogEntryType.X509_ENTRY,
        leaf_certificate=body,
    )


def make_sequenced_cert(timestamp: int, body: str, seq: int) -> LoggedCertificate:
    """Certificado com número de sequência atribuído."""
    cert = make_cert(timestamp, body)
    cert.sequence_number = seq
    return cert


@pytest.fixture
def mock_client():
    """
    Cliente de coordenação simulado.
    Cada teste configura os retornos das chamadas que espera.
    """
    return MagicMock(spec=CoordinationClient)


@pytest.fixture
def store(mock_client):
    """Store sobre o cliente simulado."""
    return ConsistentStore(mock_client, ROOT, NODE_ID, LoggedCertificate)


@pytest.fixture
def memory_client():
    """Cliente de coordenação local, com TinyDB em memória."""
    client = MemoryCoordinationClient()
    yield client
    client.close()


@pytest.fixture
def memory_store(memory_client):
    """Store sobre o cliente de coordenação local."""
    return ConsistentStore(memory_client, ROOT, NODE_ID, LoggedCertificate)


@pytest.fixture
def restore_logging():
    """
    Restaura o logger raiz e o structlog depois de testes que chamam setup_logging.
    """
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    # Os handlers de captura do pytest são recolocados por ele a cada fase
    for handler in root_logger.handlers[:]:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def cert_factory():
    """Fábrica de certificados pendentes: cert_factory(timestamp, body)."""
    return make_cert


@pytest.fixture
def sequenced_cert_factory():
    """Fábrica de certificados sequenciados: sequenced_cert_factory(timestamp, body, seq)."""
    return make_sequenced_cert
