import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore", "pdfminer")


class Log:
    """Process-wide logger for the review workflow."""

    _logger: logging.Logger = logging.getLogger("docreview")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Set the level, attach a stdout handler once, and quiet transport libraries.

        httpx logs every request line at INFO, which would interleave with
        stage messages; those loggers are capped at WARNING unless DEBUG is on.
        """
        level = log_level.upper()
        cls._logger.setLevel(level)
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(level if level == "DEBUG" else "WARNING")

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)
