"""
File: common/logging.py
Sistema de logging unificado para o store consistente e seus clientes de coordenação.
Suporta níveis de debug configuráveis, logging estruturado em JSON e integração com structlog.
"""
import os
import sys
import json
import logging
import datetime
from typing import Dict, Any, List, Optional
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from collections import deque

import structlog

from common.utils import get_debug_mode, get_env_var

DEBUG = get_debug_mode()
DEBUG_LEVEL = str(get_env_var("DEBUG_LEVEL", "basic")).lower()  # Níveis: basic, advanced, trace
LOG_DIR = get_env_var("LOG_DIR")  # None desabilita os arquivos de log

# Níveis de log
LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "IMPORTANT": 25,  # Nível customizado entre INFO e WARNING
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}

logging.addLevelName(LEVELS["IMPORTANT"], "IMPORTANT")

# Buffer circular para logs em memória
log_buffer: Dict[str, deque] = {}  # component -> deque(log entries)
log_buffer_size = 1000

# Atributos presentes em todo LogRecord; o que sobrar é contexto extra
_RECORD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


def _important(self, message, *args, **kwargs):
    if self.isEnabledFor(LEVELS["IMPORTANT"]):
        self._log(LEVELS["IMPORTANT"], message, args, **kwargs)


logging.Logger.important = _important


def setup_logging(component_name: str, debug: Optional[bool] = None, debug_level: Optional[str] = None,
                  log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configura o sistema de logging para um componente.

    Args:
        component_name: Nome do componente (ex.: "consistent_store")
        debug: Se True, habilita logs de DEBUG (sobrescreve variável de ambiente)
        debug_level: Nível de debug (basic, advanced, trace) (sobrescreve variável de ambiente)
        log_dir: Diretório para salvar logs (sobrescreve variável de ambiente).
            Sem diretório, apenas o console é configurado.

    Returns:
        logging.Logger: Logger do componente
    """
    debug_enabled = debug if debug is not None else DEBUG
    debug_level_value = debug_level if debug_level is not None else DEBUG_LEVEL
    logs_directory = log_dir if log_dir is not None else LOG_DIR
    level = logging.DEBUG if debug_enabled else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove handlers existentes
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    detailed = debug_enabled and debug_level_value in ("advanced", "trace")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(JsonFormatter(component_name, detailed=detailed))
    root_logger.addHandler(console_handler)

    if logs_directory:
        os.makedirs(logs_directory, exist_ok=True)

        # Arquivo completo (todos os logs)
        file_handler = RotatingFileHandler(
            os.path.join(logs_directory, f"{component_name}_all.log"),
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter(component_name, detailed=True))
        root_logger.addHandler(file_handler)

        # Arquivo de logs importantes (IMPORTANT e acima)
        important_handler = TimedRotatingFileHandler(
            os.path.join(logs_directory, f"{component_name}_important.log"),
            when="midnight",
            interval=1,
            backupCount=7
        )
        important_handler.setLevel(LEVELS["IMPORTANT"])
        important_handler.setFormatter(JsonFormatter(component_name, detailed=True))
        root_logger.addHandler(important_handler)

    log_buffer[component_name] = deque(maxlen=log_buffer_size)
    root_logger.addHandler(BufferHandler(component_name))

    configure_structlog()

    logger = logging.getLogger(component_name)
    logger.info(f"Logging inicializado para {component_name}. Debug: {debug_enabled}, Nível: {debug_level_value}")

    if detailed:
        logger.debug(f"Configuração detalhada de logging: dir={logs_directory}, buffer_size={log_buffer_size}")

    return logger


def configure_structlog():
    """
    Faz o structlog emitir pelos handlers do logging padrão.

    Os pares chave-valor do evento viram atributos extras do LogRecord, que o
    JsonFormatter agrupa em "context".
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def add_to_buffer(component: str, record: logging.LogRecord):
    """
    Adiciona um registro de log ao buffer circular.

    Args:
        component: Nome do componente
        record: Registro de log
    """
    if component not in log_buffer:
        log_buffer[component] = deque(maxlen=log_buffer_size)

    log_buffer[component].append({
        "timestamp": int(record.created * 1000),  # milissegundos
        "level": record.levelname,
        "component": component,
        "node_id": getattr(record, "node_id", None),
        "message": record.getMessage(),
        "module": record.module,
        "lineno": record.lineno,
        "function": record.funcName,
        "context": _extract_context(record)
    })


def get_log_entries(component: str, level: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
    """
    Obtém registros de log do buffer, mais recentes primeiro.

    Args:
        component: Nome do componente
        level: Filtro opcional por nível de log
        limit: Número máximo de registros a retornar

    Returns:
        List[Dict[str, Any]]: Lista de registros de log
    """
    if component not in log_buffer:
        return []

    entries = list(log_buffer[component])
    if level:
        entries = [e for e in entries if e["level"] == level.upper()]
    entries.reverse()

    return entries[:limit]


def get_important_log_entries(component: str, limit: int = 100) -> List[Dict[str, Any]]:
    """
    Obtém registros IMPORTANT e acima do buffer, mais recentes primeiro.

    Args:
        component: Nome do componente
        limit: Número máximo de registros a retornar

    Returns:
        List[Dict[str, Any]]: Lista de registros de log importantes
    """
    if component not in log_buffer:
        return []

    important_levels = ["IMPORTANT", "WARNING", "ERROR", "CRITICAL"]
    entries = [e for e in log_buffer[component] if e["level"] in important_levels]
    entries.reverse()

    return entries[:limit]


def set_debug_level(enabled: bool, level: str = "basic"):
    """
    Atualiza o nível de debug em tempo de execução.

    Args:
        enabled: Se True, habilita debug
        level: Nível de debug (basic, advanced, trace)
    """
    global DEBUG, DEBUG_LEVEL

    DEBUG = enabled
    DEBUG_LEVEL = level

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if enabled else logging.INFO)

    # Apenas o console acompanha; arquivos mantêm o nível configurado
    for handler in root_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(logging.DEBUG if enabled else logging.INFO)

    root_logger.info(f"Nível de debug alterado: enabled={enabled}, level={level}")


def _extract_context(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    """Junta o atributo "context" e os extras passados pelo structlog."""
    context = dict(getattr(record, "context", None) or {})
    for key, value in record.__dict__.items():
        if key not in _RECORD_ATTRS and key not in ("context", "node_id"):
            context[key] = value
    return context or None


class BufferHandler(logging.Handler):
    """Handler que copia os registros do componente para o buffer em memória."""

    def __init__(self, component: str):
        super().__init__(level=logging.DEBUG)
        self.component = component

    def emit(self, record: logging.LogRecord):
        if record.name.startswith(self.component):
            add_to_buffer(self.component, record)


class JsonFormatter(logging.Formatter):
    """
    Formatador que converte logs para formato JSON.
    """

    def __init__(self, component: str, detailed: bool = False):
        """
        Inicializa o formatador.

        Args:
            component: Nome do componente
            detailed: Se True, inclui campos adicionais no log
        """
        super().__init__()
        self.component = component
        self.detailed = detailed

    def format(self, record: logging.LogRecord) -> str:
        """
        Formata um registro de log como JSON.

        Args:
            record: Registro de log

        Returns:
            str: JSON formatado
        """
        log_data = {
            "timestamp": int(record.created * 1000),  # milissegundos
            "datetime": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "node_id": getattr(record, "node_id", None),
            "message": record.getMessage()
        }

        if self.detailed:
            log_data.update({
                "module": record.module,
                "function": record.funcName,
                "lineno": record.lineno,
                "thread": record.thread,
                "process": record.process
            })

        context = _extract_context(record)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        return json.dumps(log_data, default=str)
