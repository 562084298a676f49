"""
Testes para o sistema de logging: buffer em memória, integração com structlog e arquivos.
"""
import json
import logging
import sys

import pytest
import structlog

from common.logging import (
    JsonFormatter, get_important_log_entries, get_log_entries, set_debug_level, setup_logging
)
from consistent_store import InvariantViolation
from consistent_store.errors import check

pytestmark = pytest.mark.usefixtures("restore_logging")


def test_setup_logging_fills_buffer():
    """Teste do buffer em memória do componente."""
    # Arrange
    setup_logging("consistent_store", debug=True, log_dir="")
    logger = logging.getLogger("consistent_store")

    # Act
    logger.debug("primeira")
    logger.important("segunda")
    logging.getLogger("outro_componente").info("fora do componente")

    # Assert
    entries = get_log_entries("consistent_store")
    messages = [e["message"] for e in entries]
    assert messages[:2] == ["segunda", "primeira"], "Mais recentes primeiro"
    assert "fora do componente" not in messages, "Outros componentes não entram no buffer"
    assert [e["message"] for e in get_log_entries("consistent_store", level="IMPORTANT")] == ["segunda"]
    assert get_important_log_entries("consistent_store")[0]["message"] == "segunda"
    assert get_log_entries("desconhecido") == []


def test_structlog_events_carry_context():
    """Teste de eventos do structlog: os pares chave-valor viram contexto."""
    # Arrange
    setup_logging("consistent_store", debug=True, log_dir="")
    log = structlog.get_logger("consistent_store.coordination")

    # Act
    log.debug("key created", key="/root/a", revision=3)

    # Assert
    entry = get_log_entries("consistent_store", limit=1)[0]
    assert entry["message"] == "key created"
    assert entry["context"]["key"] == "/root/a"
    assert entry["context"]["revision"] == 3


def test_invariant_violation_is_logged_critical():
    """Teste do registro CRITICAL antes de parar o processo."""
    # Arrange
    setup_logging("consistent_store", log_dir="")

    # Act
    with pytest.raises(InvariantViolation) as exc_info:
        check(False, "!entry.has_sequence_number", "subject", node_id="node-1")

    # Assert
    assert exc_info.value.condition == "!entry.has_sequence_number"
    entry = get_important_log_entries("consistent_store", limit=1)[0]
    assert entry["level"] == "CRITICAL"
    assert entry["node_id"] == "node-1"
    assert entry["context"]["condition"] == "!entry.has_sequence_number"


def test_info_level_filters_debug():
    """Teste do nível INFO: DEBUG não é registrado até set_debug_level."""
    # Arrange
    setup_logging("consistent_store", debug=False, log_dir="")
    logger = logging.getLogger("consistent_store")

    # Act
    logger.debug("escondida")
    set_debug_level(True, "advanced")
    logger.debug("visível")

    # Assert
    messages = [e["message"] for e in get_log_entries("consistent_store")]
    assert "escondida" not in messages
    assert "visível" in messages


def test_file_handlers(tmp_path):
    """Teste dos arquivos de log: completo e importante."""
    # Arrange
    setup_logging("consistent_store", debug=True, log_dir=str(tmp_path))
    logger = logging.getLogger("consistent_store")

    # Act
    logger.debug("detalhe")
    logger.warning("aviso")
    for handler in logging.getLogger().handlers:
        handler.flush()

    # Assert
    all_lines = (tmp_path / "consistent_store_all.log").read_text().splitlines()
    important_lines = (tmp_path / "consistent_store_important.log").read_text().splitlines()
    assert "detalhe" in [json.loads(line)["message"] for line in all_lines]
    important = [json.loads(line)["message"] for line in important_lines]
    assert "aviso" in important and "detalhe" not in important


def test_json_formatter():
    """Teste do formato JSON, com contexto e exceção."""
    # Arrange
    formatter = JsonFormatter("consistent_store", detailed=True)
    try:
        raise RuntimeError("falhou")
    except RuntimeError:
        record = logging.getLogger("consistent_store").makeRecord(
            "consistent_store", logging.ERROR, __file__, 10, "erro %s", ("x",),
            exc_info=sys.exc_info(),
            extra={"node_id": "node-1", "context": {"key": "/root/a"}}
        )

    # Act
    data = json.loads(formatter.format(record))

    # Assert
    assert data["message"] == "erro x"
    assert data["component"] == "consistent_store"
    assert data["node_id"] == "node-1"
    assert data["context"] == {"key": "/root/a"}
    assert data["exception"]["type"] == "RuntimeError"
    assert "lineno" in data
