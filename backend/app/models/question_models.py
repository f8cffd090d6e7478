from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional, Union

Difficulty = Literal["easy", "medium", "hard"]
DIFFICULTIES = ("easy", "medium", "hard")


class Question(BaseModel):
    text: str = Field(..., min_length=10, description="The question prompt, trimmed")
    options: List[str] = Field(
        ...,
        min_length=4,
        max_length=4,
        description="Exactly four answer choices"
    )
    correctOption: str = Field(..., description="Text of the correct choice, one of options")
    timeLimit: int = Field(..., ge=5, le=60, description="Seconds allowed to answer")
    difficulty: Difficulty

    @model_validator(mode="after")
    def _correct_option_is_an_option(self):
        if self.correctOption not in self.options:
            raise ValueError(f"correctOption {self.correctOption!r} is not one of the options")
        return self


class GenerationParams(BaseModel):
    topic: str = Field(..., min_length=1, max_length=100)
    difficulty: Difficulty
    count: int = Field(..., ge=1, le=35)


class GenerationResult(BaseModel):
    questions: List[Question]
    aiGenerated: bool
    fallbackReason: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    details: Union[List[str], str]
