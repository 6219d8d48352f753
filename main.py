import logging

import uvicorn

from tileserver.config import Settings
from tileserver.routes import create_app
from tileserver.store import TileStore
from tileserver.utils.logs import LoggingUtils

settings = Settings.from_env()

LoggingUtils.setup_logging_with_default_formatter(
    loglevel=settings.loglevel, json_format=not settings.is_development
)

store = TileStore(settings)
app = create_app(settings, store)


if __name__ == "__main__":
    logging.getLogger(__name__).info(
        f"Starting DZI tile server {settings.version} on http://{settings.host}:{settings.port} "
        f"(environment: {settings.environment})"
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.loglevel.lower(),
        log_config=None,
    )
