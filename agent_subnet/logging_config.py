import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Optional

import colorlog
import structlog


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    json_output: bool = False

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        return int(getattr(logging, self.level))


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Setup stdlib and structlog logging based on config.
    """
    config = config or LoggingConfig()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(config.get_log_level())

    if config.json_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = colorlog.StreamHandler(sys.stderr)
        console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
    root_logger.addHandler(console_handler)

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
        )
        root_logger.addHandler(file_handler)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger(__name__).debug(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )
