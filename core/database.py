#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
StepHabit Scheduler - Database Manager
Relational persistence for habits, schedule rows, busy rows and the completion log

Author: StepHabit Team
Version: 1.2.0
Date: 2025-11-04
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Dict, List, Optional, Any, Iterator, Protocol, Tuple

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, Time, UniqueConstraint,
    create_engine, func, or_, select, text, update, delete,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import config
from core.models import (
    BusyEntry, CompletionLogEntry, ConflictError, EntryKind, HabitRecord, Outcome, PersistenceError, ReminderSetting,
    ScheduleEntry, ValidationError,
)
from utils.validators import title_key

logger = logging.getLogger(__name__)

Base = declarative_base()

# ===== EXCEPTIONS =====

class DatabaseError(PersistenceError):
    """Base store failure"""
    pass


class DuplicateEntryError(DatabaseError, ConflictError):
    """A uniqueness constraint rejected the write"""
    status_code = 409

# ===== TABLES =====

class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255))
    email = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class HabitRow(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    title_key = Column(String(100), nullable=False, index=True)
    description = Column(Text)
    category = Column(String(50))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ScheduleRow(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint("user_id", "habit_id", "day", "starttime", name="uq_schedules_slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    habit_id = Column(Integer, ForeignKey("habits.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    day = Column(Date, nullable=False)
    starttime = Column(Time, nullable=False)
    endtime = Column(Time)
    enddate = Column(Date)
    repeat = Column(String(50), nullable=False, default="daily")
    customdays = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class BusyScheduleRow(Base):
    __tablename__ = "busy_schedules"
    __table_args__ = (
        UniqueConstraint("user_id", "title_key", "day", "starttime", name="uq_busy_schedules_slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    title_key = Column(String(255), nullable=False)
    day = Column(Date, nullable=False)
    starttime = Column(Time, nullable=False)
    endtime = Column(Time)
    enddate = Column(Date)
    repeat = Column(String(50), nullable=False, default="daily")
    customdays = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ProgressRow(Base):
    __tablename__ = "progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id"), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    reflected_reason = Column(Text)
    progress_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserSettingRow(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    email_alerts = Column(Boolean, nullable=False, default=True)
    daily_reminder_time = Column(String(8))
    timezone = Column(String(64))
    last_reminder_sent_date = Column(Date)

# ===== STORE INTERFACE =====

class ScheduleStore(Protocol):
    """What the engine reads from and writes to"""

    def list_schedule_rows(self, owner_id: int, start_day: Optional[str] = None,
                           end_day: Optional[str] = None) -> List[ScheduleEntry]: ...

    def list_busy_rows(self, owner_id: int, start_day: Optional[str] = None,
                       end_day: Optional[str] = None) -> List[BusyEntry]: ...

    def find_habit_by_title(self, owner_id: int, title: str) -> Optional[HabitRecord]: ...

    def list_habits(self, owner_id: int) -> List[HabitRecord]: ...

    def list_progress(self, owner_id: int, habit_id: Optional[int] = None,
                      since: Optional[str] = None) -> List[CompletionLogEntry]: ...

# ===== CONVERSION HELPERS =====

def _to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _to_time(value: Optional[str]) -> Optional[time]:
    return time.fromisoformat(value) if value else None


def _time_str(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M:%S") if value else None


def _habit_record(row: HabitRow) -> HabitRecord:
    return HabitRecord(
        id=row.id, owner_id=row.user_id, title=row.title,
        category=row.category, description=row.description,
    )


def _schedule_entry(row: ScheduleRow, habit_title: Optional[str] = None) -> ScheduleEntry:
    return ScheduleEntry(
        id=row.id,
        owner_id=row.user_id,
        habit_id=row.habit_id,
        day=row.day.isoformat(),
        start_time=_time_str(row.starttime),
        end_time=_time_str(row.endtime),
        repeat=row.repeat,
        custom_days=row.customdays,
        notes=row.notes,
        end_date=row.enddate.isoformat() if row.enddate else None,
        habit_title=habit_title,
    )


def _busy_entry(row: BusyScheduleRow) -> BusyEntry:
    return BusyEntry(
        id=row.id,
        owner_id=row.user_id,
        title=row.title,
        day=row.day.isoformat(),
        start_time=_time_str(row.starttime),
        end_time=_time_str(row.endtime),
        repeat=row.repeat,
        custom_days=row.customdays,
        notes=row.notes,
        end_date=row.enddate.isoformat() if row.enddate else None,
    )


def _progress_entry(row: ProgressRow) -> CompletionLogEntry:
    return CompletionLogEntry(
        owner_id=row.user_id,
        habit_id=row.habit_id,
        date=row.progress_date.isoformat(),
        outcome=row.status,
        id=row.id,
    )

# ===== DATABASE MANAGER =====

class DatabaseManager:
    """SQLAlchemy-backed implementation of ScheduleStore"""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or config.database.url
        echo = config.database.echo if echo is None else echo

        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if self.url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = config.database.pool_pre_ping

        self.engine = create_engine(self.url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        logger.info(f"🗄️ Database engine created for {self.engine.url.render_as_string(hide_password=True)}")

    # ----- lifecycle -----

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("✅ Database tables ready")

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """One transaction: commit on success, roll back on any error"""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.warning(f"⚠️ Constraint violation: {e.orig}")
            raise DuplicateEntryError("Entry already exists") from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"❌ Database error: {e}")
            raise DatabaseError("Database operation failed") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
            return True
        except DatabaseError:
            return False

    # ----- users & habits -----

    def create_user(self, name: Optional[str] = None, email: Optional[str] = None) -> int:
        with self.session_scope() as session:
            user = UserRow(name=name, email=email)
            session.add(user)
            session.flush()
            return user.id

    def owner_exists(self, owner_id: int) -> bool:
        with self.session_scope() as session:
            return session.get(UserRow, owner_id) is not None

    def create_habit(self, owner_id: int, title: str, category: Optional[str] = None,
                     description: Optional[str] = None) -> HabitRecord:
        with self.session_scope() as session:
            habit = HabitRow(
                user_id=owner_id, title=title, title_key=title_key(title), category=category, description=description,
            )
            session.add(habit)
            session.flush()
            return _habit_record(habit)

    def get_habit(self, habit_id: int) -> Optional[HabitRecord]:
        with self.session_scope() as session:
            row = session.get(HabitRow, habit_id)
            return _habit_record(row) if row else None

    def list_habits(self, owner_id: int) -> List[HabitRecord]:
        with self.session_scope() as session:
            rows = session.execute(
                select(HabitRow).where(HabitRow.user_id == owner_id).order_by(HabitRow.title, HabitRow.id)
            ).scalars().all()
            return [_habit_record(row) for row in rows]

    def find_habit_by_title(self, owner_id: int, title: str) -> Optional[HabitRecord]:
        """Case-insensitive exact title match within the owner's habits"""
        if not owner_id or not title:
            return None
        with self.session_scope() as session:
            row = session.execute(
                select(HabitRow)
                .where(HabitRow.user_id == owner_id)
                .where(HabitRow.title_key == title_key(title))
                .order_by(HabitRow.id)
                .limit(1)
            ).scalars().first()
            return _habit_record(row) if row else None

    # ----- schedule rows -----

    def list_schedule_rows(self, owner_id: int, start_day: Optional[str] = None,
                           end_day: Optional[str] = None) -> List[ScheduleEntry]:
        query = (
            select(ScheduleRow, HabitRow.title)
            .outerjoin(HabitRow, HabitRow.id == ScheduleRow.habit_id)
            .where(ScheduleRow.user_id == owner_id)
        )
        if start_day:
            query = query.where(ScheduleRow.day >= _to_date(start_day))
        if end_day:
            query = query.where(ScheduleRow.day <= _to_date(end_day))
        query = query.order_by(ScheduleRow.day, ScheduleRow.starttime, ScheduleRow.id)

        with self.session_scope() as session:
            return [_schedule_entry(row, habit_title) for row, habit_title in session.execute(query).all()]

    def list_busy_rows(self, owner_id: int, start_day: Optional[str] = None,
                       end_day: Optional[str] = None) -> List[BusyEntry]:
        query = select(BusyScheduleRow).where(BusyScheduleRow.user_id == owner_id)
        if start_day:
            query = query.where(BusyScheduleRow.day >= _to_date(start_day))
        if end_day:
            query = query.where(BusyScheduleRow.day <= _to_date(end_day))
        query = query.order_by(BusyScheduleRow.day, BusyScheduleRow.starttime, BusyScheduleRow.id)

        with self.session_scope() as session:
            return [_busy_entry(row) for row in session.execute(query).scalars().all()]

    def create_schedule_entry(self, owner_id: int, habit: HabitRecord, day: str, start_time: str,
                              end_time: Optional[str], repeat: str, custom_days: Optional[str] = None,
                              notes: Optional[str] = None, end_date: Optional[str] = None) -> ScheduleEntry:
        with self.session_scope() as session:
            row = ScheduleRow(
                habit_id=habit.id,
                user_id=owner_id,
                day=_to_date(day),
                starttime=_to_time(start_time),
                endtime=_to_time(end_time),
                enddate=_to_date(end_date),
                repeat=repeat,
                customdays=custom_days,
                notes=notes,
            )
            session.add(row)
            session.flush()
            return _schedule_entry(row, habit.title)

    def create_busy_entry(self, owner_id: int, title: str, day: str, start_time: str,
                          end_time: Optional[str], repeat: str, custom_days: Optional[str] = None,
                          notes: Optional[str] = None, end_date: Optional[str] = None) -> BusyEntry:
        with self.session_scope() as session:
            row = BusyScheduleRow(
                user_id=owner_id,
                title=title,
                title_key=title_key(title),
                day=_to_date(day),
                starttime=_to_time(start_time),
                endtime=_to_time(end_time),
                enddate=_to_date(end_date),
                repeat=repeat,
                customdays=custom_days,
                notes=notes,
            )
            session.add(row)
            session.flush()
            return _busy_entry(row)

    def delete_entry(self, kind: EntryKind, entry_id: int, owner_id: Optional[int] = None) -> bool:
        table = ScheduleRow if kind == EntryKind.HABIT else BusyScheduleRow
        statement = delete(table).where(table.id == entry_id)
        if owner_id is not None:
            statement = statement.where(table.user_id == owner_id)
        with self.session_scope() as session:
            return session.execute(statement).rowcount > 0

    # ----- completion log -----

    def list_progress(self, owner_id: int, habit_id: Optional[int] = None,
                      since: Optional[str] = None, until: Optional[str] = None) -> List[CompletionLogEntry]:
        query = select(ProgressRow).where(ProgressRow.user_id == owner_id)
        if habit_id is not None:
            query = query.where(ProgressRow.habit_id == habit_id)
        if since:
            query = query.where(ProgressRow.progress_date >= _to_date(since))
        if until:
            query = query.where(ProgressRow.progress_date <= _to_date(until))
        query = query.order_by(ProgressRow.progress_date, ProgressRow.id)

        with self.session_scope() as session:
            return [_progress_entry(row) for row in session.execute(query).scalars().all()]

    def append_progress(self, owner_id: int, habit_id: int, outcome: str, day: str,
                        reason: Optional[str] = None) -> CompletionLogEntry:
        with self.session_scope() as session:
            row = ProgressRow(
                user_id=owner_id, habit_id=habit_id, status=outcome,
                progress_date=_to_date(day), reflected_reason=reason,
            )
            session.add(row)
            session.flush()
            return _progress_entry(row)

    def set_progress_count(self, owner_id: int, habit_id: int, outcome: str, day: str,
                           target: int) -> Tuple[int, int]:
        """
        Bring the number of `outcome` records on `day` to `target` by adding
        rows or removing the newest ones. Returns the day's (done, missed).
        """
        if target < 0:
            raise ValidationError("targetCount must be a non-negative number", field_name="targetCount")
        progress_date = _to_date(day)

        with self.session_scope() as session:
            existing = session.execute(
                select(ProgressRow)
                .where(ProgressRow.user_id == owner_id)
                .where(ProgressRow.habit_id == habit_id)
                .where(ProgressRow.status == outcome)
                .where(ProgressRow.progress_date == progress_date)
                .order_by(ProgressRow.created_at.desc(), ProgressRow.id.desc())
            ).scalars().all()

            if len(existing) < target:
                now = datetime.utcnow()
                session.add_all([
                    ProgressRow(user_id=owner_id, habit_id=habit_id, status=outcome,
                                progress_date=progress_date, created_at=now)
                    for _ in range(target - len(existing))
                ])
            else:
                for row in existing[:len(existing) - target]:
                    session.delete(row)
            session.flush()

            counts = dict(session.execute(
                select(ProgressRow.status, func.count(ProgressRow.id))
                .where(ProgressRow.user_id == owner_id)
                .where(ProgressRow.habit_id == habit_id)
                .where(ProgressRow.progress_date == progress_date)
                .group_by(ProgressRow.status)
            ).all())
            return counts.get(Outcome.DONE.value, 0), counts.get(Outcome.MISSED.value, 0)

    # ----- reminder settings -----

    def save_reminder_setting(self, owner_id: int, daily_reminder_time: Optional[str],
                              timezone: Optional[str] = None, email_alerts: bool = True) -> None:
        with self.session_scope() as session:
            row = session.execute(
                select(UserSettingRow).where(UserSettingRow.user_id == owner_id)
            ).scalars().first()
            if row is None:
                row = UserSettingRow(user_id=owner_id)
                session.add(row)
            row.daily_reminder_time = daily_reminder_time
            row.timezone = timezone
            row.email_alerts = email_alerts

    def list_reminder_settings(self) -> List[ReminderSetting]:
        """Users with email alerts on and a reminder time set"""
        query = (
            select(UserSettingRow, UserRow)
            .join(UserRow, UserRow.id == UserSettingRow.user_id)
            .where(UserSettingRow.email_alerts.is_(True))
            .where(UserSettingRow.daily_reminder_time.is_not(None))
            .order_by(UserSettingRow.user_id)
        )
        with self.session_scope() as session:
            return [
                ReminderSetting(
                    owner_id=setting.user_id,
                    email=user.email,
                    name=user.name,
                    daily_reminder_time=setting.daily_reminder_time,
                    timezone=setting.timezone,
                    email_alerts=setting.email_alerts,
                    last_reminder_sent_date=(
                        setting.last_reminder_sent_date.isoformat()
                        if setting.last_reminder_sent_date else None
                    ),
                )
                for setting, user in session.execute(query).all()
            ]

    def claim_reminder_slot(self, owner_id: int, date_key: str) -> bool:
        """
        Atomically record that today's reminder goes out. Returns False when
        another worker (or an earlier tick) already recorded `date_key`.
        """
        sent_date = _to_date(date_key)
        statement = (
            update(UserSettingRow)
            .where(UserSettingRow.user_id == owner_id)
            .where(or_(
                UserSettingRow.last_reminder_sent_date.is_(None),
                UserSettingRow.last_reminder_sent_date != sent_date,
            ))
            .values(last_reminder_sent_date=sent_date)
        )
        with self.session_scope() as session:
            return session.execute(statement).rowcount == 1

    def release_reminder_slot(self, owner_id: int, date_key: str,
                              previous: Optional[str] = None) -> None:
        """Undo a claim after a failed send so the next tick retries"""
        statement = (
            update(UserSettingRow)
            .where(UserSettingRow.user_id == owner_id)
            .where(UserSettingRow.last_reminder_sent_date == _to_date(date_key))
            .values(last_reminder_sent_date=_to_date(previous))
        )
        with self.session_scope() as session:
            session.execute(statement)

# ===== CONVENIENCE FUNCTIONS =====

def create_database_manager(url: Optional[str] = None, create_tables: bool = True) -> DatabaseManager:
    """Create a manager and make sure the schema exists"""
    manager = DatabaseManager(url)
    if create_tables:
        manager.create_tables()
    return manager

# ===== EXPORT =====

__all__ = [
    'Base',
    'DatabaseError',
    'DuplicateEntryError',
    'ScheduleStore',
    'DatabaseManager',
    'create_database_manager',
]
