from app.models.user import LearningHistoryEntry, User
from app.models.learning_record import LearningRecord
from app.models.quiz import Quiz, QuizAttempt  # noqa: F401

__all__ = ["User", "LearningHistoryEntry", "LearningRecord", "Quiz", "QuizAttempt"]
