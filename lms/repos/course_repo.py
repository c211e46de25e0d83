"""SQL persistence for courses, tags and lessons."""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import CourseRow, CourseTagRow, LessonRow, TagRow, UserRow
from lms.models.course import Course, InstructorRef, Lesson


class CourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        if row is None:
            return None
        return (await self._hydrate([_row_to_course(row)]))[0]

    async def list_courses(self, *, published_only: bool = False) -> list[Course]:
        """Courses newest first, joined with instructor identity and tags."""
        stmt = select(CourseRow).order_by(CourseRow.created_at.desc(), CourseRow.title)
        if published_only:
            stmt = stmt.where(CourseRow.published.is_(True))
        rows = (await self._session.execute(stmt)).scalars().all()
        return await self._hydrate([_row_to_course(r) for r in rows])

    async def add(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                description=course.description,
                image_url=course.image_url,
                difficulty_level=course.difficulty_level,
                duration_minutes=course.duration_minutes,
                published=course.published,
                instructor_id=course.instructor_id,
                created_at=course.created_at,
                updated_at=course.updated_at,
            )
        )
        await self._session.flush()

    async def update(self, course_id: UUID, fields: dict, now: int) -> bool:
        stmt = (
            update(CourseRow)
            .where(CourseRow.id == course_id)
            .values(**fields, updated_at=now)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def set_tags(self, course_id: UUID, names: list[str]) -> None:
        """Replace the course's tags, creating unknown tag names."""
        await self._session.execute(
            delete(CourseTagRow).where(CourseTagRow.course_id == course_id)
        )
        wanted = sorted({n.strip() for n in names if n.strip()})
        if not wanted:
            return

        existing = (
            (await self._session.execute(select(TagRow).where(TagRow.name.in_(wanted))))
            .scalars()
            .all()
        )
        by_name = {t.name: t for t in existing}
        for name in wanted:
            if name not in by_name:
                tag = TagRow(name=name)
                self._session.add(tag)
                by_name[name] = tag
        await self._session.flush()

        for name in wanted:
            self._session.add(CourseTagRow(course_id=course_id, tag_id=by_name[name].id))
        await self._session.flush()

    async def _hydrate(self, courses: list[Course]) -> list[Course]:
        if not courses:
            return courses

        instructor_ids = {c.instructor_id for c in courses if c.instructor_id}
        instructors: dict[UUID, InstructorRef] = {}
        if instructor_ids:
            rows = (
                (
                    await self._session.execute(
                        select(UserRow).where(UserRow.id.in_(instructor_ids))
                    )
                )
                .scalars()
                .all()
            )
            instructors = {
                r.id: InstructorRef(
                    id=r.id, name=r.full_name or r.username, avatar_url=r.avatar_url
                )
                for r in rows
            }

        tag_stmt = (
            select(CourseTagRow.course_id, TagRow.name)
            .join(TagRow, TagRow.id == CourseTagRow.tag_id)
            .where(CourseTagRow.course_id.in_([c.id for c in courses]))
            .order_by(TagRow.name)
        )
        tags: dict[UUID, list[str]] = {}
        for course_id, name in (await self._session.execute(tag_stmt)).all():
            tags.setdefault(course_id, []).append(name)

        return [
            replace(
                c,
                instructor=instructors.get(c.instructor_id) if c.instructor_id else None,
                tags=tuple(tags.get(c.id, ())),
            )
            for c in courses
        ]


class LessonRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        if row is None:
            return None
        return _row_to_lesson(row)

    async def list_by_course(self, course_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def next_position(self, course_id: UUID) -> int:
        stmt = select(func.max(LessonRow.position)).where(
            LessonRow.course_id == course_id
        )
        current = (await self._session.execute(stmt)).scalar_one_or_none()
        return 1 if current is None else current + 1

    async def add(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                course_id=lesson.course_id,
                title=lesson.title,
                description=lesson.description,
                video_url=lesson.video_url,
                duration_seconds=lesson.duration_seconds,
                position=lesson.position,
                created_at=lesson.created_at,
                updated_at=lesson.updated_at,
            )
        )
        await self._session.flush()


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        description=row.description,
        image_url=row.image_url,
        difficulty_level=row.difficulty_level,
        duration_minutes=row.duration_minutes,
        published=row.published,
        instructor_id=row.instructor_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        description=row.description,
        video_url=row.video_url,
        duration_seconds=row.duration_seconds,
        position=row.position,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
