import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(log_dir: Path, debug: bool = False):
    """
    Configure the root logger: a rotating file in ``log_dir`` plus rich
    output on stderr so log lines never mix with the prompt on stdout.

    Args:
        log_dir: Directory for pulse.log
        debug: DEBUG level when set, WARNING otherwise
    """
    level = logging.DEBUG if debug else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    file_handler = None
    file_error = None
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "pulse.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
    except OSError as e:
        file_error = e
    if file_handler is not None:
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"))
        root_logger.addHandler(file_handler)

    console_handler = RichHandler(console=Console(stderr=True), show_path=debug, rich_tracebacks=True)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    # urllib3 is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))

    if file_error is not None:
        logging.warning("File logging disabled, cannot open %s: %s", log_dir, file_error)
    logging.debug("Logging initialized: level=%s", logging.getLevelName(level))
