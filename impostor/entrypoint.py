import uvicorn

from .constants import HOST, LOG_FILE, LOG_LEVEL, PORT
from .logging_config import get_logger, setup_logging


def main() -> None:
    # Setup logging before importing app
    setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
    logger = get_logger(__name__)

    from .app import app

    logger.info(f"Starting impostor server on {HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    main()
