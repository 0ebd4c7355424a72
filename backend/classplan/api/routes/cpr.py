from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from classplan.api.deps import get_current_user, get_db, require_roles
from classplan.core.exceptions import AppError, CurriculumImportError
from classplan.models.user import User, UserRole
from classplan.schemas.common import MessageResponse
from classplan.schemas.cpr import CprProgressOut, CprSubTopicOut, CprTreeOut, CprUploadResult, SubTopicStatusUpdate
from classplan.services.cpr_progress import recalculate_planned_dates
from classplan.services.cpr_report import build_cpr_tree, compute_progress, get_subject_or_404
from classplan.services.cpr_sheet import delete_curriculum, parse_cpr_workbook, replace_curriculum
from classplan.services.cpr_status import set_sub_topic_status

router = APIRouter()


@router.post("/upload", response_model=CprUploadResult, status_code=status.HTTP_201_CREATED)
def upload_cpr_sheet(
    subject_id: str = Form(min_length=1, max_length=36),
    file: UploadFile = File(...),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> CprUploadResult:
    content = file.file.read()
    if not content:
        raise CurriculumImportError("No Excel file uploaded.")
    get_subject_or_404(db, subject_id)
    parsed = parse_cpr_workbook(content)
    result = replace_curriculum(db, subject_id, parsed)
    db.commit()
    return result


@router.get("/subjects/{subject_id}", response_model=CprTreeOut)
def get_cpr_by_subject(
    subject_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CprTreeOut:
    subject = get_subject_or_404(db, subject_id)
    return build_cpr_tree(db, subject)


@router.delete("/subjects/{subject_id}", response_model=MessageResponse)
def delete_cpr_by_subject(
    subject_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> MessageResponse:
    subject = get_subject_or_404(db, subject_id)
    if delete_curriculum(db, subject.id) == 0:
        raise AppError("No CPR data found for this subject", status_code=404, code="not_found")
    db.commit()
    return MessageResponse(message=f'CPR data for subject "{subject.name}" has been successfully deleted.')


@router.post("/subjects/{subject_id}/recalculate", response_model=CprTreeOut)
def recalculate_cpr(
    subject_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> CprTreeOut:
    subject = get_subject_or_404(db, subject_id)
    recalculate_planned_dates(db, subject.id)
    db.commit()
    return build_cpr_tree(db, subject)


@router.get("/subjects/{subject_id}/progress", response_model=CprProgressOut)
def get_cpr_progress(
    subject_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CprProgressOut:
    subject = get_subject_or_404(db, subject_id)
    return compute_progress(db, subject)


@router.patch("/sub-topics/{sub_topic_id}/status", response_model=CprSubTopicOut)
def update_sub_topic_status(
    sub_topic_id: str,
    payload: SubTopicStatusUpdate,
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.teacher)),
    db: Session = Depends(get_db),
) -> CprSubTopicOut:
    sub_topic = set_sub_topic_status(db, sub_topic_id, payload.status)
    db.commit()
    db.refresh(sub_topic)
    return CprSubTopicOut.model_validate(sub_topic)
