from .agency import Agency
from .application import APPLICATION_STATUSES, DEFAULT_APPLICATION_STATUS, Application
from .candidate import Candidate
from .job import JOB_STATUSES, WORK_PLACE_MODES, Job
from .note import Note

__all__ = [
    "APPLICATION_STATUSES",
    "DEFAULT_APPLICATION_STATUS",
    "JOB_STATUSES",
    "WORK_PLACE_MODES",
    "Agency",
    "Application",
    "Candidate",
    "Job",
    "Note",
]
