"""
tasks/models.py -- Domain dataclass for tasks.

Pure data container. Validation (text, status) happens in services/tasks.py;
persistence in tasks/store.py.
"""

from dataclasses import dataclass
from typing import Optional

# The fixed set of task categories. BASELINE_STATUS is used when the caller
# omits one.
TASK_STATUSES: tuple[str, ...] = ("Personal", "Professional", "Urgent")
BASELINE_STATUS = "Personal"


@dataclass
class Task:
    """A unit of work owned by exactly one user.

    owner_id is fixed at creation; tasks are never transferred.
    id is None before the record is written to the database.
    """

    owner_id: str
    text: str
    status: str = BASELINE_STATUS
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
