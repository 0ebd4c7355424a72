from classplan.models.class_session import ClassSession  # noqa: F401
from classplan.models.cpr import CprModule, CprStatus, CprSubTopic, CprTopic  # noqa: F401
from classplan.models.room import Room  # noqa: F401
from classplan.models.roster import Division, Student, Subject  # noqa: F401
from classplan.models.teacher import Teacher  # noqa: F401
from classplan.models.user import User, UserRole  # noqa: F401
