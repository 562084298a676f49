"""
Modelos de dados comuns: entradas do log, cabeças de árvore assinadas e estado dos nós do cluster.
"""
import hashlib
import json
from typing import Any, Dict, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


def canonical_json(data: Dict[str, Any]) -> str:
    """
    Serializa um dicionário de forma canônica (chaves ordenadas, sem espaços).

    Args:
        data: Dicionário serializável em JSON.

    Returns:
        str: JSON canônico.
    """
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class LogEntryType(str, Enum):
    """Tipos de entrada aceitos pelo log."""
    X509_ENTRY = "X509_ENTRY"
    PRECERT_ENTRY = "PRECERT_ENTRY"


class LoggedCertificate(BaseModel):
    """
    Certificado submetido ao log.

    O hash de conteúdo cobre apenas ``entry_type``, ``leaf_certificate`` e
    ``issuer_key_hash``. O ``sct_timestamp`` é preenchido pelo log na primeira
    aceitação, e submissões repetidas herdam o da cópia canônica.
    """
    model_config = ConfigDict(validate_assignment=True)

    sct_timestamp: int = Field(default=0, ge=0)  # Unix timestamp em milissegundos
    entry_type: LogEntryType = LogEntryType.X509_ENTRY
    leaf_certificate: str
    issuer_key_hash: Optional[str] = None  # Apenas para PRECERT_ENTRY
    sequence_number: Optional[int] = Field(default=None, ge=0)

    @property
    def timestamp(self) -> int:
        return self.sct_timestamp

    def has_sequence_number(self) -> bool:
        return self.sequence_number is not None

    def serialize(self) -> str:
        """Forma serializada canônica, a mesma gravada no serviço de coordenação."""
        return canonical_json(self.model_dump(mode="json"))

    @classmethod
    def deserialize(cls, data: str) -> "LoggedCertificate":
        """
        Reconstrói um certificado a partir de sua forma serializada.

        Raises:
            pydantic.ValidationError: Se ``data`` não for um certificado válido.
        """
        return cls.model_validate_json(data)

    def content_hash(self) -> bytes:
        """SHA-256 do conteúdo do certificado (32 bytes)."""
        content = self.model_dump(mode="json", include={"entry_type", "leaf_certificate", "issuer_key_hash"})
        return hashlib.sha256(canonical_json(content).encode("utf-8")).digest()

    def identity(self) -> str:
        """Forma serializada sem os campos preenchidos pelo log."""
        return canonical_json(self.model_dump(mode="json", exclude={"sct_timestamp"}))

    def copy_backfilled_from(self, other: "LoggedCertificate"):
        """Copia para este certificado os campos que o log preencheu em ``other``."""
        self.sct_timestamp = other.sct_timestamp


class SignedTreeHead(BaseModel):
    """Cabeça de árvore assinada (STH) publicada pelo log."""
    version: int = 0
    timestamp: int = 0  # Unix timestamp em milissegundos
    tree_size: int = Field(default=0, ge=0)
    sha256_root_hash: str = ""  # base64
    signature: str = ""  # base64


class ClusterNodeState(BaseModel):
    """Visão local de um nó do cluster sobre o progresso do log."""
    node_id: str
    hostname: str = ""
    log_port: int = 0
    contiguous_tree_size: int = Field(default=0, ge=0)
    newest_sth: Optional[SignedTreeHead] = None
