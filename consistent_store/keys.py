"""
Codificação das chaves do store no serviço de coordenação.

Layout sob a raiz configurada::

    <root>/unsequenced/<base64(hash(entry))>   entradas pendentes
    <root>/sequenced/<sequence_number>         entradas com posição atribuída
    <root>/serving_sth                         STH publicada (reservado)
    <root>/nodes/<node_id>                     estado de cada nó (reservado)
"""
import base64

UNSEQUENCED_DIR = "unsequenced"
SEQUENCED_DIR = "sequenced"
SERVING_STH_KEY = "serving_sth"
NODES_DIR = "nodes"


def normalize_root(root: str) -> str:
    """
    Raiz como caminho absoluto sem barra final; a raiz vazia vira ``""``.

    ``"ct"``, ``"/ct"`` e ``"/ct/"`` resultam todos em ``"/ct"``.
    """
    root = root.rstrip("/")
    if root and not root.startswith("/"):
        root = "/" + root
    return root


def encode_hash(digest: bytes) -> str:
    """
    Codifica um hash de conteúdo como componente de chave.

    Usa o alfabeto base64 padrão. O hash pode conter ``/``; as listagens por
    prefixo continuam encontrando a chave, mesmo que ela ocupe vários níveis.
    """
    return base64.b64encode(digest).decode("ascii")


def unsequenced_prefix(root: str) -> str:
    return f"{normalize_root(root)}/{UNSEQUENCED_DIR}/"


def sequenced_prefix(root: str) -> str:
    return f"{normalize_root(root)}/{SEQUENCED_DIR}/"


def unsequenced_key(root: str, entry) -> str:
    """
    Chave da entrada pendente, derivada do hash do seu conteúdo.

    Args:
        root: Raiz do store.
        entry: Entrada com ``content_hash()``.

    Returns:
        str: ``<root>/unsequenced/<base64(hash)>``
    """
    return unsequenced_prefix(root) + encode_hash(entry.content_hash())


def sequenced_key(root: str, sequence_number: int) -> str:
    """
    Chave da entrada na posição ``sequence_number``.

    Raises:
        ValueError: Se o número de sequência for negativo.
    """
    if sequence_number < 0:
        raise ValueError(f"sequence_number deve ser não negativo: {sequence_number}")
    return sequenced_prefix(root) + str(int(sequence_number))


def serving_sth_key(root: str) -> str:
    return f"{normalize_root(root)}/{SERVING_STH_KEY}"


def node_state_key(root: str, node_id: str) -> str:
    return f"{normalize_root(root)}/{NODES_DIR}/{node_id}"
