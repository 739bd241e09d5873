from vigil.models.applicant import Applicant
from vigil.models.edge import Edge
from vigil.models.loved_one import LovedOne
from vigil.models.reminder import Reminder
from vigil.models.timeline import TimelineEvent
from vigil.models.user import User

__all__ = ["Applicant", "Edge", "LovedOne", "Reminder", "TimelineEvent", "User"]
