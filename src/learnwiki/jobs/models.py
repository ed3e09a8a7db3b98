"""Generation job types and typed inputs.

Each job type has exactly one input shape. Inputs are validated when the job
is created, so dispatch never sees a job with missing fields.
"""

from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import AfterValidator, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from learnwiki.errors import ValidationError
from learnwiki.store.schemas import CamelModel, WikiPage


class JobType(str, Enum):
    """What a job generates."""

    WIKI_PAGE = "wiki_page"
    QUESTION = "question"
    SELECTION = "selection"


class JobStatus(str, Enum):
    """Job lifecycle states. COMPLETED and FAILED are terminal."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


Text = Annotated[str, AfterValidator(_require_text)]


class TopicInput(CamelModel):
    """Input for a page-from-topic job."""

    topic: Text
    parent_id: Optional[str] = None
    force_regenerate: bool = False
    existing_page_id: Optional[str] = None


class QuestionInput(CamelModel):
    """Input for an answer-question job."""

    question: Text
    current_page_content: Text
    parent_id: Optional[str] = None


class SelectionInput(CamelModel):
    """Input for a generate-from-selection job."""

    selected_text: Text
    context: Text
    parent_id: Text


JobInput = Union[TopicInput, QuestionInput, SelectionInput]

JOB_INPUT_MODELS: dict[JobType, type[CamelModel]] = {
    JobType.WIKI_PAGE: TopicInput,
    JobType.QUESTION: QuestionInput,
    JobType.SELECTION: SelectionInput,
}


def parse_job_type(value: Any) -> JobType:
    """Coerce a raw type tag to a JobType.

    Raises:
        ValidationError: If the tag is not a known job type.
    """
    try:
        return JobType(value)
    except ValueError as e:
        allowed = ", ".join(t.value for t in JobType)
        raise ValidationError(f"Unknown job type: {value!r} (expected one of {allowed})") from e


def parse_job_input(job_type: Any, payload: Any) -> JobInput:
    """Validate a raw input payload against the model for its job type.

    Raises:
        ValidationError: If the type is unknown or required fields are
            missing or blank.
    """
    job_type = parse_job_type(job_type)
    if isinstance(payload, CamelModel):
        payload = payload.model_dump()
    if not isinstance(payload, dict):
        raise ValidationError(f"Input for {job_type.value} job must be an object")

    model = JOB_INPUT_MODELS[job_type]
    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except PydanticValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
        raise ValidationError(
            f"Missing or invalid fields for {job_type.value} job: {', '.join(fields)}"
        ) from e


class GenerationJob(CamelModel):
    """Durable record of one generation request and its outcome."""

    id: str
    status: JobStatus = JobStatus.PENDING
    type: JobType
    input: JobInput
    output: Optional[WikiPage] = None
    error: Optional[str] = None
    created_at: int
    updated_at: int

    @model_validator(mode="before")
    @classmethod
    def _typed_input(cls, data: Any) -> Any:
        # Pick the input model from the type tag instead of letting the
        # union guess from field overlap.
        if isinstance(data, dict) and "type" in data and isinstance(data.get("input"), dict):
            data = {**data, "input": parse_job_input(data["type"], data["input"])}
        return data


class JobCreate(CamelModel):
    """Request body for creating a job."""

    type: str = Field(..., min_length=1)
    input: dict[str, Any]
