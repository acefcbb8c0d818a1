"""create scheduling tables

Revision ID: 20250101_0001
Revises: None
Create Date: 2025-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20250101_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "teacher", "student", "parent", name="user_role")
venue_type_enum = sa.Enum(
    "lecture_hall", "lab", "tutorial_room", "auditorium", "seminar_room", name="venue_type"
)
timetable_status_enum = sa.Enum("draft", "published", "archived", name="timetable_status")
lecture_type_enum = sa.Enum("lecture", "tutorial", "lab", "seminar", name="lecture_type")
lecture_frequency_enum = sa.Enum("weekly", "biweekly", "monthly", name="lecture_frequency")
instance_status_enum = sa.Enum("scheduled", "completed", "cancelled", "postponed", name="instance_status")
attendance_status_enum = sa.Enum("present", "absent", "late", "excused", name="attendance_status")
registration_status_enum = sa.Enum("active", "dropped", "completed", name="registration_status")

ENUMS = (
    user_role_enum,
    venue_type_enum,
    timetable_status_enum,
    lecture_type_enum,
    lecture_frequency_enum,
    instance_status_enum,
    attendance_status_enum,
    registration_status_enum,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_course_id", "users", ["course_id"])

    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_courses_code", "courses", ["code"], unique=True)

    op.create_table(
        "units",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("code", "course_id", name="uq_units_code_course"),
    )
    op.create_index("ix_units_code", "units", ["code"])
    op.create_index("ix_units_course_id", "units", ["course_id"])

    op.create_table(
        "unit_prerequisites",
        sa.Column("unit_id", sa.String(length=36), sa.ForeignKey("units.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "prerequisite_id", sa.String(length=36), sa.ForeignKey("units.id", ondelete="CASCADE"), primary_key=True
        ),
    )

    op.create_table(
        "semesters",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_units_per_student", sa.Integer(), nullable=False, server_default="8"),
        *_timestamps(),
    )

    op.create_table(
        "semester_courses",
        sa.Column(
            "semester_id", sa.String(length=36), sa.ForeignKey("semesters.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "semester_units",
        sa.Column(
            "semester_id", sa.String(length=36), sa.ForeignKey("semesters.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("unit_id", sa.String(length=36), sa.ForeignKey("units.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "venues",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("building", sa.String(length=200), nullable=False),
        sa.Column("room", sa.String(length=100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("type", venue_type_enum, nullable=False),
        sa.Column("facilities", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("building", "room", name="uq_venues_building_room"),
    )
    op.create_table(
        "venue_maintenance",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("venue_id", sa.String(length=36), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False),
    )
    op.create_index("ix_venue_maintenance_venue_id", "venue_maintenance", ["venue_id"])

    op.create_table(
        "timetables",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("effective_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("effective_to", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", timetable_status_enum, nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("total_weeks", sa.Integer(), nullable=False, server_default="14"),
        *_timestamps(),
    )
    op.create_index("ix_timetables_semester_course", "timetables", ["semester_id", "course_id"])
    op.create_index("ix_timetables_status", "timetables", ["status"])

    op.create_table(
        "lectures",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "timetable_id", sa.String(length=36), sa.ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("unit_id", sa.String(length=36), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("venue_building", sa.String(length=200), nullable=True),
        sa.Column("venue_room", sa.String(length=100), nullable=True),
        sa.Column("venue_capacity", sa.Integer(), nullable=True),
        sa.Column("lecture_type", lecture_type_enum, nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("frequency", lecture_frequency_enum, nullable=False),
        sa.Column("color", sa.String(length=7), nullable=False, server_default="#3B82F6"),
        sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("online_link", sa.String(length=500), nullable=True),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_lectures_timetable_day", "lectures", ["timetable_id", "day_of_week"])
    op.create_index("ix_lectures_venue", "lectures", ["venue_building", "venue_room"])
    op.create_index("ix_lectures_unit_id", "lectures", ["unit_id"])
    op.create_index("ix_lectures_teacher_id", "lectures", ["teacher_id"])

    op.create_table(
        "lecture_instances",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("lecture_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", instance_status_enum, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("venue_building", sa.String(length=200), nullable=True),
        sa.Column("venue_room", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("lecture_id", "date", name="uq_lecture_instances_lecture_date"),
    )
    op.create_index("ix_lecture_instances_lecture_id", "lecture_instances", ["lecture_id"])
    op.create_index("ix_lecture_instances_date", "lecture_instances", ["date"])
    op.create_index("ix_lecture_instances_status", "lecture_instances", ["status"])
    op.create_index("ix_lecture_instances_teacher_id", "lecture_instances", ["teacher_id"])

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "instance_id",
            sa.String(length=36),
            sa.ForeignKey("lecture_instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("status", attendance_status_enum, nullable=False),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("instance_id", "student_id", name="uq_attendance_records_instance_student"),
    )
    op.create_index("ix_attendance_records_student_id", "attendance_records", ["student_id"])

    op.create_table(
        "unit_registrations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("student_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("unit_id", sa.String(length=36), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("registration_date", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("status", registration_status_enum, nullable=False),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "student_id", "unit_id", "semester_id", name="uq_unit_registrations_student_unit_semester"
        ),
    )
    op.create_index("ix_unit_registrations_student_id", "unit_registrations", ["student_id"])
    op.create_index("ix_unit_registrations_unit_id", "unit_registrations", ["unit_id"])
    op.create_index("ix_unit_registrations_semester_id", "unit_registrations", ["semester_id"])


def downgrade() -> None:
    op.drop_table("unit_registrations")
    op.drop_table("attendance_records")
    op.drop_table("lecture_instances")
    op.drop_table("lectures")
    op.drop_table("timetables")
    op.drop_table("venue_maintenance")
    op.drop_table("venues")
    op.drop_table("semester_units")
    op.drop_table("semester_courses")
    op.drop_table("semesters")
    op.drop_table("unit_prerequisites")
    op.drop_table("units")
    op.drop_table("courses")
    op.drop_table("users")
    bind = op.get_bind()
    for enum in ENUMS:
        enum.drop(bind, checkfirst=True)
