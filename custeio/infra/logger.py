# custeio/infra/logger.py
"""
Sistema de logging do motor de custeio.

Este módulo configura e fornece loggers para registrar a geração de
relatórios, o replay do ledger (movimentos ignorados, camadas esgotadas)
e a leitura de arquivos de entrada.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


def _flag(nome: str) -> bool:
    return os.environ.get(nome, "0").strip().lower() in {"1", "true", "sim", "yes", "on"}


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = _flag("CUSTEIO_LOGGING")
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = _flag("CUSTEIO_OUTPUT")

def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é criado na primeira mensagem (``delay=True``).

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    if ENABLE_LOGGING:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logger.disabled = not ENABLE_LOGGING

    return logger

# Diretório base para logs
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("CUSTEIO_LOGS_DIR") or (BASE_DIR / "logs"))

system_logger = setup_logger('custeio.system', str(LOGS_DIR / 'system.log'))

ledger_logger = setup_logger('custeio.ledger', str(LOGS_DIR / 'ledger.log'))

file_logger = setup_logger('custeio.files', str(LOGS_DIR / 'files.log'))

def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")
    print_system(f"[{level.upper()}] {event} {details or ''}")

def log_ledger_event(action: str, movimento_id: Optional[str] = None, level: str = "info", **kwargs) -> None:
    """
    Log específico do replay do ledger.

    Args:
        action: Ação (replay, ignorado, descoberto, divergencia)
        movimento_id: Movimento envolvido (opcional)
        level: Nível do log
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "action": action,
        "movimento_id": movimento_id,
        **kwargs
    }
    log_method = getattr(ledger_logger, level.lower(), ledger_logger.info)
    log_method(f"LEDGER_{action.upper()}: {log_data}")

def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para leitura de arquivos de entrada.

    Args:
        operation: Tipo de operação (load_movimentos, load_niveis, ...)
        file_path: Caminho do arquivo
        rows_processed: Número de linhas processadas
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs
    }
    file_logger.info(f"FILE_{operation.upper()}: {log_data}")

