from __future__ import annotations

import logging
import time
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.metrics import ENROLLMENTS
from lms.models.course import Enrollment
from lms.models.progress import UserProgress
from lms.repos.course_repo import CourseRepo
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.progress_repo import UserProgressRepo
from lms.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


async def enroll(session: AsyncSession, *, user_id: UUID, course_id: UUID) -> Enrollment:
    """Enroll the user and start their course progress at 0%.

    Both rows are written in the caller's transaction.
    """
    course = await CourseRepo(session).get(course_id)
    if course is None or not course.published:
        raise NotFoundError("course not found")

    repo = EnrollmentRepo(session)
    if await repo.is_enrolled(user_id, course_id):
        logger.warning("Duplicate enrollment user=%s course=%s", user_id, course_id)
        raise ConflictError("already enrolled")

    now = int(time.time())
    enrollment = Enrollment.new(user_id=user_id, course_id=course_id, now=now)
    try:
        await repo.add(enrollment)
    except ValueError:
        raise ConflictError("already enrolled") from None

    await UserProgressRepo(session).save(
        UserProgress.new(user_id=user_id, course_id=course_id, now=now)
    )

    ENROLLMENTS.inc()
    logger.info("Enrolled user=%s course=%s", user_id, course_id)
    return enrollment
