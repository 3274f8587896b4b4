import math
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

UserRole = Literal["student", "teacher"]

MIN_GRADE, MAX_GRADE = 5, 11
MIN_DIFFICULTY, MAX_DIFFICULTY = 1, 5


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


class Question(BaseModel):
    id: Union[int, str]
    grade: int
    difficulty: int
    topic: str
    question: str = ""
    options: list[str] = []
    correct: int  # index into options

    def public(self) -> dict:
        """Question payload without the answer key."""
        return self.model_dump(exclude={"correct"})


class QuestionEvent(BaseModel):
    """One answered (or timed-out) question."""

    model_config = ConfigDict(frozen=True)

    topic: str
    is_correct: bool
    elapsed_seconds: float = Field(ge=0)


class SessionAggregate(BaseModel):
    total_questions: int = Field(0, ge=0)
    correct_count: int = Field(0, ge=0)
    wrong_count: int = Field(0, ge=0)
    max_streak: int = Field(0, ge=0)
    question_times: list[float] = []
    answer_history: list[bool] = []
    wrong_topics: list[str] = []
    # None until the session is finalized
    total_time_used_seconds: Optional[float] = None
    difficulty: int = Field(3, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    grade: int = Field(MIN_GRADE, ge=MIN_GRADE, le=MAX_GRADE)

    @model_validator(mode="after")
    def _check_counts(self):
        if self.correct_count + self.wrong_count != self.total_questions:
            raise ValueError("correct_count + wrong_count must equal total_questions")
        if len(self.question_times) != self.total_questions or len(self.answer_history) != self.total_questions:
            raise ValueError("question_times and answer_history must have one entry per question")
        if self.max_streak > self.total_questions:
            raise ValueError("max_streak cannot exceed total_questions")
        return self

    @property
    def accuracy(self) -> int:
        """Integer percent of correct answers, 0 for an empty session."""
        if self.total_questions == 0:
            return 0
        return round_half_up(self.correct_count / self.total_questions * 100)

    @property
    def mean_time(self) -> Optional[float]:
        if not self.question_times:
            return None
        return sum(self.question_times) / len(self.question_times)

    @property
    def is_finalized(self) -> bool:
        return self.total_time_used_seconds is not None


class HistoryRecord(BaseModel):
    """One completed session in the history ledger (stored with the legacy key names)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: str
    pai: int = Field(alias="PAI")
    accuracy: int
    avg_time: float = Field(alias="avgTime")
    training_time_limit: float = Field(alias="trainingTimeLimit")
    era: str = Field(alias="ERA")


class WeakTopicMarker(BaseModel):
    grade: int
    topic: str


class DifficultyState(BaseModel):
    level: int = Field(3, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    version: int = 0


class StudentProfile(BaseModel):
    name: str
    grade: Optional[int] = None
    role: UserRole
    history: list[HistoryRecord] = []


class ReviewResult(BaseModel):
    date: str
    total: int
    correct: int
    wrong: int


class SessionResult(BaseModel):
    session_id: str
    pai: Optional[int] = None
    accuracy: int = 0
    total_questions: int = 0
    correct_count: int = 0
    wrong_count: int = 0
    max_streak: int = 0
    era_tags: list[str] = []
    era_summary: str
    era_display: list[str] = []
    weak_topic: Optional[str] = None
    previous_difficulty: int
    new_difficulty: int
    difficulty_changed: bool = False
    adaptation_notice: Optional[str] = None
    previous_pai: Optional[int] = None
    pai_trend: Optional[Literal["up", "down"]] = None
    record: HistoryRecord
