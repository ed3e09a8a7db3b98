"""Generation jobs: types, id derivation and the polling contract.

The engine lives in ``learnwiki.jobs.engine``; it depends on the store,
which itself imports the job models from here.
"""

from learnwiki.jobs.ids import make_job_id, make_page_id, slugify
from learnwiki.jobs.models import (
    GenerationJob,
    JobCreate,
    JobInput,
    JobStatus,
    JobType,
    QuestionInput,
    SelectionInput,
    TopicInput,
    parse_job_input,
    parse_job_type,
)
from learnwiki.jobs.polling import (
    JobFailedError,
    JobNotFoundError,
    PollError,
    PollTimeoutError,
    wait_for_job,
)

__all__ = [
    # Ids
    "make_job_id",
    "make_page_id",
    "slugify",
    # Models
    "GenerationJob",
    "JobCreate",
    "JobInput",
    "JobStatus",
    "JobType",
    "QuestionInput",
    "SelectionInput",
    "TopicInput",
    "parse_job_input",
    "parse_job_type",
    # Polling
    "JobFailedError",
    "JobNotFoundError",
    "PollError",
    "PollTimeoutError",
    "wait_for_job",
]
