"""Runtime settings read from the environment (and an optional .env file)."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from classroom_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT

load_dotenv()

DATA_FILE = Path(os.getenv("CLASSROOM_QUIZ_DATA_FILE", "classroom_quiz_data.json"))
HOST = os.getenv("CLASSROOM_QUIZ_HOST", DEFAULT_HOST)
PORT = int(os.getenv("CLASSROOM_QUIZ_PORT", str(DEFAULT_PORT)))
LOG_LEVEL = os.getenv("CLASSROOM_QUIZ_LOG_LEVEL", "INFO").upper()
