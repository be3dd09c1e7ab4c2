"""Quiz-related constants shared across the core and server layers."""

DEFAULT_QUESTION_POINTS: int = 1
MIN_OPTION_COUNT: int = 2
TRUE_FALSE_OPTIONS: tuple[str, str] = ("True", "False")

HIGH_BAND_THRESHOLD: int = 80
MEDIUM_BAND_THRESHOLD: int = 60

QUIZZES_KEY: str = "quizzes"
ATTEMPTS_KEY: str = "quiz_attempts"
LEGACY_QUIZZES_KEY: str = "legacy_quizzes"
LEGACY_ATTEMPTS_KEY: str = "legacy_quiz_attempts"
