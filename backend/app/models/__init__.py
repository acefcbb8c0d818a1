from app.models.course import Course  # noqa: F401
from app.models.lecture import Lecture, LectureFrequency, LectureType  # noqa: F401
from app.models.lecture_instance import (  # noqa: F401
    AttendanceRecord,
    AttendanceStatus,
    InstanceStatus,
    LectureInstance,
)
from app.models.semester import Semester, semester_courses, semester_units  # noqa: F401
from app.models.timetable import Timetable, TimetableStatus  # noqa: F401
from app.models.unit import Unit, unit_prerequisites  # noqa: F401
from app.models.unit_registration import RegistrationStatus, UnitRegistration  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
from app.models.venue import Venue, VenueMaintenance, VenueType  # noqa: F401
