from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

QUIZ_QUESTION_COUNT = 10
OPTIONS_PER_QUESTION = 4


class QuizQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: StrictStr
    options: list[StrictStr] = Field(min_length=OPTIONS_PER_QUESTION, max_length=OPTIONS_PER_QUESTION)
    correct_answer: StrictInt = Field(alias="correctAnswer", ge=0, le=OPTIONS_PER_QUESTION - 1)


class Quiz(BaseModel):
    """
    Shape returned to clients (camelCase on the wire):
      {"questions": [{"question": "...", "options": ["a","b","c","d"], "correctAnswer": 0}, ...]}
    """

    questions: list[QuizQuestion] = Field(min_length=QUIZ_QUESTION_COUNT, max_length=QUIZ_QUESTION_COUNT)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def is_valid_quiz(payload: Any) -> bool:
    try:
        Quiz.model_validate(payload)
    except ValidationError:
        return False
    return True
