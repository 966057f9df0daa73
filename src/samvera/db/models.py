"""
samvera.db.models

Persistence schema for the school-management service.

Responsibilities:
- Define ORM models for tenants (Organization) and every tenant-scoped record.
- Every tenant-scoped model carries exactly one `org_id`, set at creation.
- Soft-deletable models carry `deleted_at`; reads filter on it.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from samvera.db.base import Base


def utcnow() -> datetime:
    # Persist naive UTC timestamps; SQLite has no tz-aware type.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class ThreadType(enum.StrEnum):
    dm = "dm"
    group = "group"


class AttendanceStatus(enum.StrEnum):
    present = "present"
    absent = "absent"
    late = "late"
    excused = "excused"


class DailyLogKind(enum.StrEnum):
    arrival = "arrival"
    meal = "meal"
    sleep = "sleep"
    activity = "activity"
    note = "note"


def _pk() -> Any:
    return mapped_column(SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


def _org_fk() -> Any:
    return mapped_column(SAUuid(as_uuid=True), ForeignKey("orgs.id"), nullable=False, index=True)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class SoftDeleteMixin:
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True, default=None)


class Organization(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "orgs"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class User(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    first_name: Mapped[str] = mapped_column(String(200), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ssn: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    # `role` is the directory kind (staff list vs guardian list); `roles` is what the
    # user may act as when a session is issued.
    role: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("ix_users_org_role", "org_id", "role"),)


class SchoolClass(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "classes"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class ClassTeacher(Base):
    __tablename__ = "class_teachers"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    class_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True
    )
    teacher_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("class_id", "teacher_id"),)


class Student(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "students"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("classes.id"), nullable=True, index=True
    )
    first_name: Mapped[str] = mapped_column(String(200), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    language: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class GuardianStudent(Base):
    __tablename__ = "guardian_students"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    guardian_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True
    )
    relation: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("guardian_id", "student_id"),)


class Attendance(TimestampMixin, Base):
    __tablename__ = "attendance"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("classes.id"), nullable=True
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("students.id"), nullable=False
    )
    day: Mapped[date] = mapped_column("date", Date, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(Enum(AttendanceStatus), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_by: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "date"),
        Index("ix_attendance_org_date", "org_id", "date"),
    )


class DailyLog(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "daily_logs"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("classes.id"), nullable=True
    )
    kind: Mapped[DailyLogKind] = mapped_column(
        Enum(DailyLogKind), nullable=False, default=DailyLogKind.activity
    )
    recorded_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)
    # Author display name as it was when the log was written.
    creator_name: Mapped[str] = mapped_column(String(400), nullable=False)

    __table_args__ = (
        Index("ix_daily_logs_org_class_recorded", "org_id", "class_id", "recorded_at"),
    )


class MessageThread(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    thread_type: Mapped[ThreadType] = mapped_column(Enum(ThreadType), nullable=False)
    subject: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)


class MessageParticipant(TimestampMixin, Base):
    __tablename__ = "message_participants"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    message_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("messages.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    unread: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("message_id", "user_id"),)


class MessageItem(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "message_items"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    message_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("messages.id"), nullable=False
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    attachments: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (Index("ix_message_items_thread_created", "message_id", "created_at"),)


class Menu(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "menus"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("classes.id"), nullable=True
    )
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    breakfast: Mapped[str | None] = mapped_column(Text, nullable=True)
    lunch: Mapped[str | None] = mapped_column(Text, nullable=True)
    snack: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)


class Photo(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "photos"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("classes.id"), nullable=True
    )
    student_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("students.id"), nullable=True
    )
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    author_id: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)


class Announcement(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "announcements"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = _org_fk()
    class_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("classes.id"), nullable=True
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    week_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = _pk()
    org_id: Mapped[uuid.UUID] = mapped_column(SAUuid(as_uuid=True), nullable=False, index=True)
    actor: Mapped[uuid.UUID] = mapped_column(SAUuid(as_uuid=True), nullable=False)
    resource: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    resource_id: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)

    __table_args__ = (Index("ix_audit_org_created", "org_id", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# Uniqueness that must ignore soft-deleted rows (user e-mail per org, menu per
# class/day) is enforced in repositories, not with partial indexes, so the
# schema stays portable between SQLite (dev/test) and Postgres.
