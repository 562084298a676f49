"""
Configurações para o componente ConsistentStore.
"""
import os
from typing import Any, Dict, Optional

import yaml

from common.utils import get_env_int, get_env_str, get_env_float, get_env_var


# Informações do nó
NODE_ID = get_env_str("NODE_ID", "node-1")

# Raiz dos namespaces no serviço de coordenação
ROOT = get_env_str("STORE_ROOT", "/ct")

# Serviço de coordenação: "etcd" ou "memory"
COORDINATION_BACKEND = get_env_str("COORDINATION_BACKEND", "etcd")
ETCD_ENDPOINT = get_env_str("ETCD_ENDPOINT", "http://etcd-1:2379")
ETCD_TIMEOUT = get_env_float("ETCD_TIMEOUT", 5.0)  # 5 segundos

# Tempos de backoff para retentativas do cliente de coordenação
RETRY_BACKOFF_BASE = get_env_float("RETRY_BACKOFF_BASE", 0.1)  # 100ms
RETRY_BACKOFF_MAX = get_env_float("RETRY_BACKOFF_MAX", 2.0)  # 2 segundos
RETRY_MAX_ATTEMPTS = get_env_int("RETRY_MAX_ATTEMPTS", 3)  # Máximo de 3 tentativas

# Caminhos de persistência (backend "memory" com arquivo)
DATA_DIR = get_env_str("DATA_DIR", "")
LOG_DIR = get_env_var("LOG_DIR")

CONFIG_FILE = get_env_str("CONFIG_FILE", "config/config.yaml")


def default_config() -> Dict[str, Any]:
    """Configuração padrão, derivada das constantes do módulo."""
    return {
        "node": {
            "id": NODE_ID
        },
        "store": {
            "root": ROOT
        },
        "coordination": {
            "backend": COORDINATION_BACKEND,
            "etcd": {
                "endpoint": ETCD_ENDPOINT,
                "timeout": ETCD_TIMEOUT
            },
            "memory": {
                "path": os.path.join(DATA_DIR, "coordination.json") if DATA_DIR else None
            },
            "retry": {
                "maxAttempts": RETRY_MAX_ATTEMPTS,
                "backoffBase": RETRY_BACKOFF_BASE,
                "backoffMax": RETRY_BACKOFF_MAX
            }
        },
        "logging": {
            "debug": False,
            "debugLevel": "basic",
            "dir": LOG_DIR
        }
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Mescla ``override`` sobre ``base`` recursivamente, sem alterar os originais."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Carrega a configuração do arquivo YAML, sobre os valores padrão.

    Variáveis de ambiente NODE_ID, STORE_ROOT e ETCD_ENDPOINT, quando definidas,
    têm precedência sobre o arquivo.

    Args:
        path: Caminho do arquivo YAML. Se ausente ou inexistente, usa apenas os padrões.

    Returns:
        Dict[str, Any]: Configuração completa.
    """
    config = default_config()

    config_path = path or CONFIG_FILE
    if config_path and os.path.exists(config_path):
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Arquivo de configuração inválido: {config_path}")
        config = _merge(config, loaded)

    # Substituir variáveis de ambiente
    if get_env_var("NODE_ID"):
        config["node"]["id"] = get_env_str("NODE_ID")
    if get_env_var("STORE_ROOT"):
        config["store"]["root"] = get_env_str("STORE_ROOT")
    if get_env_var("ETCD_ENDPOINT"):
        config["coordination"]["etcd"]["endpoint"] = get_env_str("ETCD_ENDPOINT")

    return config
