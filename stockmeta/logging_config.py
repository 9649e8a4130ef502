"""
Configuration centralisée du logging de stockmeta.

Deux handlers sont attachés au logger racine :
- un RotatingFileHandler (logs/stockmeta.log) qui reçoit tout, dès DEBUG ;
- un StreamHandler console, au niveau INFO ou DEBUG selon --verbose.

Les lignes de rapport émises avec extra={"plain": True} sont affichées en
console sans préfixe de niveau.
"""
import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILENAME = "stockmeta.log"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
NOISY_LOGGERS = ("asyncio", "httpx", "httpcore", "PIL", "cairosvg")

# Marqueur pour retrouver nos handlers lors d'un second appel
_HANDLER_TAG = "_stockmeta_handler"


class ConsoleFormatter(logging.Formatter):
    """Formateur console : les enregistrements « plain » sortent tels quels."""

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, "plain", False):
            return record.getMessage()
        return super().format(record)


def _tag(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = None):
    """
    Configure le logger racine.

    Args:
        verbose (bool): Si True, la console passe en DEBUG, sinon en INFO.
        log_dir (Path): Répertoire des fichiers de log (par défaut <projet>/logs).
    """
    target_dir = Path(log_dir) if log_dir else LOG_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Un appel répété (tests, plusieurs commandes) remplace les handlers précédents
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]:
        root.removeHandler(handler)
        handler.close()

    file_handler = RotatingFileHandler(
        target_dir / LOG_FILENAME, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(_tag(file_handler))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ConsoleFormatter(CONSOLE_FORMAT))
    root.addHandler(_tag(console_handler))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
