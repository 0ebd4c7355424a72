from __future__ import annotations

from dataclasses import dataclass, field
import io
import logging
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from classplan.core.exceptions import CurriculumImportError, ResourceNotFoundError
from classplan.models.cpr import CprModule, CprSubTopic, CprTopic
from classplan.models.roster import Subject
from classplan.schemas.cpr import CprUploadResult
from classplan.services.cpr_progress import clear_class_links, recalculate_planned_dates, relink_classes

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ("Module", "Topic", "Sub Topic", "Lecture Count")


@dataclass
class ParsedSubTopic:
    name: str
    lecture_count: int


@dataclass
class ParsedCurriculum:
    # module name -> topic name -> sub-topics, in first-seen order
    modules: dict[str, dict[str, list[ParsedSubTopic]]] = field(default_factory=dict)
    skipped_rows: int = 0

    @property
    def topic_count(self) -> int:
        return sum(len(topics) for topics in self.modules.values())

    @property
    def sub_topic_count(self) -> int:
        return sum(len(items) for topics in self.modules.values() for items in topics.values())


def _cell_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _lecture_count(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        count = int(float(str(value).strip()))
    except ValueError:
        return None
    return count if count >= 1 else None


def parse_cpr_workbook(content: bytes) -> ParsedCurriculum:
    """Read the first sheet of a CPR workbook: one row per sub-topic."""
    try:
        workbook = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
        raise CurriculumImportError("The uploaded file is not a readable Excel workbook.") from exc

    try:
        sheet = workbook.worksheets[0] if workbook.worksheets else None
        if sheet is None:
            raise CurriculumImportError("The uploaded Excel file is empty or invalid.")

        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if not header_row:
            raise CurriculumImportError("The uploaded Excel file has no header row.")

        headers = [_cell_text(value) for value in header_row]
        missing = [name for name in REQUIRED_HEADERS if name not in headers]
        if missing:
            raise CurriculumImportError(
                f"Missing required columns: {', '.join(missing)}",
                details={"missing_columns": missing},
            )
        index = {name: headers.index(name) for name in REQUIRED_HEADERS}

        parsed = ParsedCurriculum()
        for row_number, row in enumerate(rows, start=2):
            values = list(row) + [None] * (len(headers) - len(row))
            module_name = _cell_text(values[index["Module"]])
            topic_name = _cell_text(values[index["Topic"]])
            sub_topic_name = _cell_text(values[index["Sub Topic"]])
            lecture_count = _lecture_count(values[index["Lecture Count"]])

            if not any(_cell_text(value) for value in values):
                continue
            if not module_name or not topic_name or not sub_topic_name or lecture_count is None:
                logger.warning("Skipping invalid CPR row %d: %r", row_number, tuple(row))
                parsed.skipped_rows += 1
                continue

            topics = parsed.modules.setdefault(module_name, {})
            topics.setdefault(topic_name, []).append(ParsedSubTopic(name=sub_topic_name, lecture_count=lecture_count))
    finally:
        workbook.close()

    if not parsed.modules:
        raise CurriculumImportError("The uploaded Excel file contains no valid CPR rows.")
    return parsed


def delete_curriculum(db: Session, subject_id: str) -> int:
    """Remove the subject's CPR tree after detaching its classes; returns deleted module count."""
    module_ids = list(db.execute(select(CprModule.id).where(CprModule.subject_id == subject_id)).scalars())
    if not module_ids:
        return 0
    topic_ids = list(db.execute(select(CprTopic.id).where(CprTopic.module_id.in_(module_ids))).scalars())

    clear_class_links(db, subject_id)
    if topic_ids:
        db.execute(delete(CprSubTopic).where(CprSubTopic.topic_id.in_(topic_ids)))
    db.execute(delete(CprTopic).where(CprTopic.module_id.in_(module_ids)))
    db.execute(delete(CprModule).where(CprModule.id.in_(module_ids)))
    db.flush()
    return len(module_ids)


def replace_curriculum(db: Session, subject_id: str, parsed: ParsedCurriculum) -> CprUploadResult:
    if db.get(Subject, subject_id) is None:
        raise ResourceNotFoundError("Subject", subject_id)

    delete_curriculum(db, subject_id)

    for module_order, (module_name, topics) in enumerate(parsed.modules.items(), start=1):
        module = CprModule(subject_id=subject_id, name=module_name, order=module_order)
        db.add(module)
        db.flush()
        for topic_order, (topic_name, sub_topics) in enumerate(topics.items(), start=1):
            topic = CprTopic(module_id=module.id, name=topic_name, order=topic_order)
            db.add(topic)
            db.flush()
            db.add_all(
                CprSubTopic(
                    topic_id=topic.id,
                    name=item.name,
                    order=sub_topic_order,
                    lecture_count=item.lecture_count,
                )
                for sub_topic_order, item in enumerate(sub_topics, start=1)
            )
    db.flush()

    linked = relink_classes(db, subject_id)
    recalculate_planned_dates(db, subject_id)
    logger.info(
        "Imported CPR for subject %s: %d modules, %d sub-topics, %d rows skipped",
        subject_id,
        len(parsed.modules),
        parsed.sub_topic_count,
        parsed.skipped_rows,
    )
    return CprUploadResult(
        subject_id=subject_id,
        modules=len(parsed.modules),
        topics=parsed.topic_count,
        sub_topics=parsed.sub_topic_count,
        skipped_rows=parsed.skipped_rows,
        linked_classes=linked,
    )
