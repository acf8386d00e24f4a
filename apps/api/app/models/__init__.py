from app.models.quiz import Quiz, QuizQuestion
from app.models.task import Task, TaskStatus

__all__ = ["Quiz", "QuizQuestion", "Task", "TaskStatus"]
