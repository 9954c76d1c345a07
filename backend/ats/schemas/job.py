from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.job import JOB_STATUSES, WORK_PLACE_MODES


def _canonical(value: str | None, choices: tuple[str, ...]) -> str | None:
    if value is None:
        return None
    for choice in choices:
        if choice.lower() == value.strip().lower():
            return choice
    raise ValueError(f"must be one of: {', '.join(choices)}")


def _strip_items(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    return [s.strip() for s in values if s and s.strip()]


class Question(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    question: str = Field(min_length=1, max_length=500)
    type: str = Field(default="text", max_length=30)
    options: list[str] = Field(default_factory=list)
    is_required: bool = False


def _check_question_ids(questions: list[Question] | None) -> None:
    ids = [q.id for q in questions or []]
    if len(ids) != len(set(ids)):
        raise ValueError("question ids must be unique within a job")


class JobCreate(BaseModel):
    agency_id: int
    title: str = Field(min_length=2, max_length=150)
    company_name: str | None = Field(default=None, max_length=150)  # defaults to the agency's
    department: str = Field(min_length=1, max_length=100)
    experience_level: str = Field(min_length=1, max_length=50)
    employment_type: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=10)
    skills: list[str] = Field(min_length=1)
    office_location: str = Field(min_length=1, max_length=150)
    work_place_mode: str
    employee_location: str = Field(min_length=1, max_length=150)
    hourly_rate: float | None = Field(default=None, ge=0)
    base_salary_range: int = Field(ge=0)
    upper_salary_range: int = Field(ge=0)
    other_benefits: list[str] = Field(default_factory=list)
    status: str = "Open"
    questions: list[Question] = Field(default_factory=list)

    @field_validator("work_place_mode")
    @classmethod
    def _work_place_mode(cls, v: str) -> str:
        return _canonical(v, WORK_PLACE_MODES)

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        return _canonical(v, JOB_STATUSES)

    @field_validator("skills", "other_benefits")
    @classmethod
    def _strip_list(cls, v: list[str]) -> list[str]:
        return _strip_items(v)

    @model_validator(mode="after")
    def _check_ranges_and_questions(self) -> "JobCreate":
        if self.upper_salary_range < self.base_salary_range:
            raise ValueError("upper_salary_range must be greater than or equal to base_salary_range")
        _check_question_ids(self.questions)
        return self


class JobUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    title: str | None = Field(default=None, min_length=2, max_length=150)
    company_name: str | None = Field(default=None, min_length=1, max_length=150)
    department: str | None = Field(default=None, min_length=1, max_length=100)
    experience_level: str | None = Field(default=None, min_length=1, max_length=50)
    employment_type: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = Field(default=None, min_length=10)
    skills: list[str] | None = Field(default=None, min_length=1)
    office_location: str | None = Field(default=None, min_length=1, max_length=150)
    work_place_mode: str | None = None
    employee_location: str | None = Field(default=None, min_length=1, max_length=150)
    hourly_rate: float | None = Field(default=None, ge=0)
    base_salary_range: int | None = Field(default=None, ge=0)
    upper_salary_range: int | None = Field(default=None, ge=0)
    other_benefits: list[str] | None = None
    status: str | None = None
    questions: list[Question] | None = None

    @field_validator("work_place_mode")
    @classmethod
    def _work_place_mode(cls, v: str | None) -> str | None:
        return _canonical(v, WORK_PLACE_MODES)

    @field_validator("status")
    @classmethod
    def _status(cls, v: str | None) -> str | None:
        return _canonical(v, JOB_STATUSES)

    @field_validator("skills", "other_benefits")
    @classmethod
    def _strip_list(cls, v: list[str] | None) -> list[str] | None:
        return _strip_items(v)

    @model_validator(mode="after")
    def _check_questions(self) -> "JobUpdate":
        _check_question_ids(self.questions)
        return self


class JobStatusUpdate(BaseModel):
    status: str
