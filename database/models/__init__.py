from database.models.companies import Company
from database.models.users import Profile
from database.models.jobs import Job, JobStatus
from database.models.job_permissions import JobPermission

__all__ = ["Company", "Profile", "Job", "JobStatus", "JobPermission"]
