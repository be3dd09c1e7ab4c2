"""Application entry point for the ClassroomQuiz service."""

from __future__ import annotations

from classroom_quiz import config
from classroom_quiz.core.quiz_manager import QuizManager
from classroom_quiz.server.api_server import start_api_server
from classroom_quiz.storage import JsonFileKeyValueStore
from classroom_quiz.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging, open the data file and serve the API until interrupted."""
    logger = configure_logging(config.LOG_LEVEL)
    logger.info("Starting ClassroomQuiz with data file %s", config.DATA_FILE)

    store = JsonFileKeyValueStore(config.DATA_FILE)
    quiz_manager = QuizManager(store)
    quiz_manager.migrate_legacy_data()

    server_thread = start_api_server(
        quiz_manager=quiz_manager,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
    logger.info("API available at http://%s:%d/docs", config.HOST, config.PORT)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down.")


if __name__ == "__main__":
    main()
