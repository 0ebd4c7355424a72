from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from classplan.api.deps import get_current_user, get_db, require_roles
from classplan.models.roster import Division, Student
from classplan.models.user import User, UserRole
from classplan.schemas.roster import DivisionCreate, DivisionOut, StudentCreate, StudentOut

router = APIRouter()


@router.get("/divisions", response_model=list[DivisionOut])
def list_divisions(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[DivisionOut]:
    return list(db.execute(select(Division).order_by(Division.code)).scalars())


@router.post("/divisions", response_model=DivisionOut, status_code=status.HTTP_201_CREATED)
def create_division(
    payload: DivisionCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> DivisionOut:
    if db.execute(select(Division).where(Division.code == payload.code)).scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Division code already exists")
    division = Division(**payload.model_dump())
    db.add(division)
    db.commit()
    db.refresh(division)
    return division


@router.get("/divisions/{division_id}/students", response_model=list[StudentOut])
def list_division_students(
    division_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[StudentOut]:
    if db.get(Division, division_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Division not found")
    return list(db.execute(select(Student).where(Student.division_id == division_id).order_by(Student.name)).scalars())


@router.post("/students", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
def create_student(
    payload: StudentCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> StudentOut:
    if db.get(Division, payload.division_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Division not found")
    email = payload.email.lower()
    if db.execute(select(Student).where(Student.email == email)).scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Student email already exists")
    student = Student(name=payload.name, email=email, division_id=payload.division_id)
    db.add(student)
    db.commit()
    db.refresh(student)
    return student
