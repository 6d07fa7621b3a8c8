# Filosofia: "O que não está no log, não aconteceu."

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

# Definindo o caminho para a pasta de logs internos do sistema
LOG_DIR = Path(
    os.getenv("PINGWATCH_LOG_DIR", str(Path(__file__).parent / "internallogs"))
)

ROOT_LOGGER_NAME = "PingWatch"


def _configure_root() -> logging.Logger:
    """
    Configura uma única vez os handlers do logger raiz da aplicação.

    Todos os loggers de módulo são filhos dele e propagam para cá, assim
    um único arquivo rotativo recebe o log do processo inteiro.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    # Evita duplicidade de log se o logger for inicializado mais de uma vez
    if not root.handlers:
        # Formato do log: Timestamp - Nível de Log - Modulo - Mensagem
        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        # Handler para console (Saida padrão)
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.INFO)  # Log de INFO para console
        root.addHandler(console_handler)

        # Handler para arquivo (Rotativo)
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=LOG_DIR / f"{ROOT_LOGGER_NAME}.log",
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=13,  # Mantém os últimos 13 arquivos de log
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.DEBUG)  # Log de DEBUG para arquivo
        root.addHandler(file_handler)
    return root


def setup_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Retorna o logger de um módulo do PingWatch.

    Args:
        name (str): Nome do módulo (normalmente ``__name__``).

    Returns:
        logging.Logger: Logger filho de ``PingWatch``.
    """
    root = _configure_root()
    if name == ROOT_LOGGER_NAME:
        return root
    return root.getChild(name)


# Instância única para ser importada em outros módulos
logger = setup_logger()
