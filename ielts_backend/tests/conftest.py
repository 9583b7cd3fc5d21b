"""
Shared fixtures for the grading tests.

Database tests run against a fresh in-memory SQLite database per test.
"""
import pytest_asyncio
from typing import AsyncGenerator, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ielts_backend.orm.base import Base
from ielts_backend.orm.exam import Exam, ExamSection, ExamQuestion
from ielts_backend.orm.exam_session import ExamSession, ExamSessionStatus

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


async def create_exam(
    db: AsyncSession,
    sections: Dict[str, List[dict]],
    exam_type: str = "academic",
    passing_score: float = 50.0,
) -> Dict[str, List[ExamQuestion]]:
    """
    Persist an exam. `sections` maps a section type to question kwargs.
    Returns the created questions per section type, plus the exam under "exam".
    """
    exam = Exam(title="Practice Test", exam_type=exam_type, passing_score=passing_score)
    db.add(exam)
    await db.flush()

    created = {"exam": exam}
    for order, (section_type, questions) in enumerate(sections.items()):
        section = ExamSection(exam_id=exam.id, section_type=section_type, section_order=order)
        db.add(section)
        await db.flush()
        rows = []
        for number, kwargs in enumerate(questions, start=1):
            question = ExamQuestion(section_id=section.id, question_number=number, **kwargs)
            db.add(question)
            rows.append(question)
        await db.flush()
        created[section_type] = rows

    await db.commit()
    return created


async def create_session(
    db: AsyncSession,
    exam: Exam,
    status: ExamSessionStatus = ExamSessionStatus.IN_PROGRESS,
    expires_at: Optional[object] = None,
) -> ExamSession:
    session = ExamSession(exam_id=exam.id, student_id="student-1", status=status, expires_at=expires_at)
    db.add(session)
    await db.commit()
    await db.refresh(session)
    return session


@pytest_asyncio.fixture
async def exam_factory(db_session: AsyncSession):
    async def factory(sections, exam_type="academic", passing_score=50.0):
        return await create_exam(db_session, sections, exam_type, passing_score)
    return factory


@pytest_asyncio.fixture
async def session_factory(db_session: AsyncSession):
    async def factory(exam, status=ExamSessionStatus.IN_PROGRESS, expires_at=None):
        return await create_session(db_session, exam, status, expires_at)
    return factory
