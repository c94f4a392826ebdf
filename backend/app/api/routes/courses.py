from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability
from app.core.permissions import Capability
from app.models.course import Course, SessionGroup
from app.models.user import User
from app.schemas.course import CourseCreate, CourseOut, SessionGroupCreate, SessionGroupOut

router = APIRouter()


def _get_course(db: Session, course_id: str) -> Course:
    course = db.get(Course, course_id)
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return course


@router.get("/", response_model=list[CourseOut])
def list_courses(
    current_user: User = Depends(require_capability(Capability.reference_read)),
    db: Session = Depends(get_db),
) -> list[CourseOut]:
    return list(db.execute(select(Course).order_by(Course.code)).scalars())


@router.post("/", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    current_user: User = Depends(require_capability(Capability.reference_manage)),
    db: Session = Depends(get_db),
) -> CourseOut:
    existing = db.execute(select(Course).where(Course.code == payload.code)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Course code already exists")
    if payload.teacher_id:
        teacher = db.get(User, payload.teacher_id)
        if teacher is None or not teacher.is_teacher:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="teacher_id must reference a teacher")
    course = Course(**payload.model_dump())
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@router.get("/{course_id}/groups", response_model=list[SessionGroupOut])
def list_session_groups(
    course_id: str,
    current_user: User = Depends(require_capability(Capability.reference_read)),
    db: Session = Depends(get_db),
) -> list[SessionGroupOut]:
    _get_course(db, course_id)
    query = select(SessionGroup).where(SessionGroup.course_id == course_id).order_by(SessionGroup.title)
    return list(db.execute(query).scalars())


@router.post("/{course_id}/groups", response_model=SessionGroupOut, status_code=status.HTTP_201_CREATED)
def create_session_group(
    course_id: str,
    payload: SessionGroupCreate,
    current_user: User = Depends(require_capability(Capability.reference_manage)),
    db: Session = Depends(get_db),
) -> SessionGroupOut:
    _get_course(db, course_id)
    group = SessionGroup(course_id=course_id, title=payload.title.strip())
    db.add(group)
    db.commit()
    db.refresh(group)
    return group
