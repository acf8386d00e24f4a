from __future__ import annotations

from dataclasses import dataclass, field

from app.models.quiz import Quiz

OPTION_LETTERS = "ABCD"

# (min percentage, grade, message)
GRADES = [
    (90.0, "A+", "Outstanding! You have excellent understanding!"),
    (80.0, "A", "Great job! You understood most of the content!"),
    (70.0, "B", "Good work! You got most questions right!"),
    (60.0, "C", "Not bad! You might want to review the video again."),
    (0.0, "F", "Consider watching the video again to improve your understanding."),
]


@dataclass
class QuizResult:
    score: int
    total: int
    grade: str
    message: str

    @property
    def percentage(self) -> float:
        return (self.score / self.total) * 100 if self.total else 0.0


@dataclass
class QuizSession:
    """Answer bookkeeping + scoring for one quiz attempt."""

    quiz: Quiz
    answers: dict[int, int] = field(default_factory=dict)
    current: int = 0

    @property
    def total(self) -> int:
        return len(self.quiz.questions)

    @property
    def answered(self) -> int:
        return len(self.answers)

    @property
    def all_answered(self) -> bool:
        return self.answered == self.total

    def go_to(self, index: int) -> None:
        if not 0 <= index < self.total:
            raise IndexError(f"question index out of range (0..{self.total - 1})")
        self.current = index

    def next(self) -> None:
        if self.current < self.total - 1:
            self.current += 1

    def previous(self) -> None:
        if self.current > 0:
            self.current -= 1

    def select(self, option: int, index: int | None = None) -> None:
        i = self.current if index is None else index
        q = self.quiz.questions[i]
        if not 0 <= option < len(q.options):
            raise ValueError(f"option must be between 0 and {len(q.options) - 1}")
        self.answers[i] = option

    def score(self) -> QuizResult:
        correct = sum(1 for i, q in enumerate(self.quiz.questions) if self.answers.get(i) == q.correct_answer)
        pct = (correct / self.total) * 100 if self.total else 0.0
        grade, message = next((g, m) for floor, g, m in GRADES if pct >= floor)
        return QuizResult(score=correct, total=self.total, grade=grade, message=message)

    def review_lines(self) -> list[str]:
        lines: list[str] = []
        for i, q in enumerate(self.quiz.questions):
            picked = self.answers.get(i)
            ok = picked == q.correct_answer
            lines.append(f"Question {i + 1}: {'Correct' if ok else 'Incorrect'}")
            lines.append(f"  {q.question}")
            for j, opt in enumerate(q.options):
                marks = []
                if j == q.correct_answer:
                    marks.append("correct")
                if j == picked and not ok:
                    marks.append("your answer")
                suffix = f"  <- {', '.join(marks)}" if marks else ""
                lines.append(f"  {OPTION_LETTERS[j]}) {opt}{suffix}")
            lines.append("")
        return lines

    def reset(self) -> None:
        self.answers.clear()
        self.current = 0
