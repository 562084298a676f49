"""
File: common/utils.py
Funções utilitárias compartilhadas: leitura de variáveis de ambiente e timestamps.
"""
import logging
import os
import time
from typing import Any

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes")


def get_env_var(var_name: str, default: Any = None) -> Any:
    """
    Obtém uma variável de ambiente, com valor padrão opcional.

    Args:
        var_name: Nome da variável de ambiente
        default: Valor padrão caso a variável não exista

    Returns:
        Valor da variável de ambiente ou o valor padrão
    """
    return os.environ.get(var_name, default)


def get_env_str(var_name: str, default: str = "") -> str:
    """Obtém uma variável de ambiente como string."""
    return str(get_env_var(var_name, default))


def get_env_int(var_name: str, default: int = 0) -> int:
    """
    Obtém uma variável de ambiente como inteiro.

    Valores que não podem ser convertidos caem no padrão, com um aviso no log.

    Args:
        var_name: Nome da variável de ambiente
        default: Valor padrão

    Returns:
        int: Valor convertido
    """
    raw = get_env_var(var_name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Valor inválido para {var_name}: {raw!r}. Usando padrão {default}")
        return default


def get_env_float(var_name: str, default: float = 0.0) -> float:
    """
    Obtém uma variável de ambiente como float.

    Args:
        var_name: Nome da variável de ambiente
        default: Valor padrão

    Returns:
        float: Valor convertido
    """
    raw = get_env_var(var_name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Valor inválido para {var_name}: {raw!r}. Usando padrão {default}")
        return default


def get_env_bool(var_name: str, default: bool = False) -> bool:
    """Obtém uma variável de ambiente como booleano (true/1/yes)."""
    raw = get_env_var(var_name)
    if raw is None:
        return default
    return str(raw).lower() in _TRUE_VALUES


def get_debug_mode() -> bool:
    """
    Verifica se o modo de depuração está ativado.

    Returns:
        bool: True se o modo de depuração estiver ativado, False caso contrário
    """
    return get_env_bool("DEBUG", False)


def current_timestamp() -> int:
    """
    Obtém o timestamp atual em milissegundos.

    Returns:
        int: Timestamp atual em milissegundos
    """
    return int(time.time() * 1000)
