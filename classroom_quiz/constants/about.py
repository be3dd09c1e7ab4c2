"""Static metadata describing ClassroomQuiz."""

APP_NAME = "ClassroomQuiz"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "ClassroomQuiz is the assessment engine of a classroom platform: teachers author "
    "weighted quizzes, students work through them one question at a time, and every "
    "submission lands in the gradebook."
)
