import logging
import sys

import structlog

SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


class LoggingUtils:
    @staticmethod
    def get_renderers(json_format: bool = False) -> list:
        if json_format:
            return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        return [structlog.dev.ConsoleRenderer(colors=False)]

    @staticmethod
    def setup_logging_with_default_formatter(loglevel: str = "INFO", json_format: bool = False, stream=None):
        """
        Routes all stdlib logging through a single root handler rendered by structlog.

        Loggers that already exist (uvicorn, fastapi, ...) lose their own handlers and
        propagate to the root instead.
        """
        formatter = structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *LoggingUtils.get_renderers(json_format),
            ],
        )

        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(formatter)

        root = logging.getLogger()
        root.handlers = [handler]
        root.setLevel(loglevel.upper())

        for name in logging.root.manager.loggerDict.keys():
            logging.getLogger(name).handlers = []
            logging.getLogger(name).propagate = True

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *SHARED_PROCESSORS,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
