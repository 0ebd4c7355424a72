from pydantic import BaseModel, EmailStr, Field


class TeacherCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    calendar_sync_enabled: bool = False


class TeacherOut(TeacherCreate):
    id: str

    model_config = {"from_attributes": True}


class DivisionCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)


class DivisionOut(DivisionCreate):
    id: str

    model_config = {"from_attributes": True}


class StudentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    division_id: str = Field(min_length=1, max_length=36)


class StudentOut(StudentCreate):
    id: str

    model_config = {"from_attributes": True}


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    credits: int = Field(default=3, ge=0, le=40)
    teacher_id: str = Field(min_length=1, max_length=36)
    division_id: str = Field(min_length=1, max_length=36)


class SubjectOut(SubjectCreate):
    id: str

    model_config = {"from_attributes": True}


class RoomCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    capacity: int = Field(default=30, ge=1, le=1000)


class RoomOut(RoomCreate):
    id: str

    model_config = {"from_attributes": True}
