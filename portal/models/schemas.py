"""
Pydantic request/response schemas for the public API.
"""

from datetime import datetime
from typing import Annotated, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from portal.core.targets import MAX_ID

Role = Literal["admin", "agent", "frontline"]
Kind = Literal["agent", "employee"]
ComplaintType = Literal["service", "billing", "claim", "policy", "other"]
ComplaintStatus = Literal["pending", "in_progress", "resolved", "closed"]
Priority = Literal["low", "medium", "high", "urgent"]
RecordId = Annotated[int, Field(ge=1, le=MAX_ID)]

T = TypeVar("T")


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    total_pages: int


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Users & auth
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    role: Role


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)
    confirm_password: str = Field(min_length=1)


class UserOut(ORMModel):
    id: int
    name: str
    email: str
    role: Role
    is_approved: bool
    created_at: datetime


class UserUpdate(BaseModel):
    role: Optional[Role] = None
    is_approved: Optional[bool] = None


class RegisterResponse(BaseModel):
    message: str
    user: UserOut


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileBase(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    email: EmailStr
    phone: str = Field(min_length=10, max_length=30)
    branch: str = Field(min_length=2, max_length=120)
    user_id: Optional[RecordId] = None


class AgentCreate(ProfileBase):
    location: str = Field(min_length=3, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class EmployeeCreate(ProfileBase):
    department: str = Field(min_length=2, max_length=120)
    position: str = Field(min_length=2, max_length=120)


class AgentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=10, max_length=30)
    branch: Optional[str] = Field(default=None, min_length=2, max_length=120)
    location: Optional[str] = Field(default=None, min_length=3, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    is_online: Optional[bool] = None
    user_id: Optional[RecordId] = None


class EmployeeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=10, max_length=30)
    branch: Optional[str] = Field(default=None, min_length=2, max_length=120)
    department: Optional[str] = Field(default=None, min_length=2, max_length=120)
    position: Optional[str] = Field(default=None, min_length=2, max_length=120)
    user_id: Optional[RecordId] = None


class AgentOut(ORMModel):
    id: int
    name: str
    email: str
    phone: str
    branch: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_online: bool
    qr_code: str
    user_id: Optional[int] = None
    created_at: datetime


class EmployeeOut(ORMModel):
    id: int
    name: str
    email: str
    phone: str
    branch: str
    department: str
    position: str
    qr_code: str
    user_id: Optional[int] = None
    created_at: datetime


class ProfileSummary(BaseModel):
    """Public view of a profile with its derived rating figures."""

    kind: Kind
    id: int
    name: str
    email: str
    phone: str
    branch: str
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_online: Optional[bool] = None
    department: Optional[str] = None
    position: Optional[str] = None
    average_rating: Optional[float] = None
    total_ratings: int = 0
    distance_km: Optional[float] = None


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

class QuestionCreate(BaseModel):
    question_text: str = Field(min_length=5)
    question_type: Kind
    is_active: bool = True
    order_index: int = 0


class QuestionUpdate(BaseModel):
    question_text: Optional[str] = Field(default=None, min_length=5)
    question_type: Optional[Kind] = None
    is_active: Optional[bool] = None
    order_index: Optional[int] = None


class QuestionOut(ORMModel):
    id: int
    question_text: str
    question_type: Kind
    is_active: bool
    order_index: int


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

class RatingAnswer(BaseModel):
    question_id: RecordId
    # Range is checked by the rating store so that every bad answer is
    # reported together with the other submission errors.
    rating_value: int
    comments: Optional[str] = None


class RatingSubmission(BaseModel):
    rater_name: str = Field(min_length=2, max_length=120)
    rater_email: EmailStr
    rater_phone: str = Field(min_length=10, max_length=30)
    policy_number: Optional[str] = Field(default=None, max_length=60)
    agent_id: Optional[RecordId] = None
    employee_id: Optional[RecordId] = None
    ratings: List[RatingAnswer] = Field(min_length=1)


class RatingOut(ORMModel):
    id: int
    rater_name: str
    rater_email: str
    rater_phone: str
    policy_number: Optional[str] = None
    agent_id: Optional[int] = None
    employee_id: Optional[int] = None
    question_id: int
    question_text: Optional[str] = None
    rating_value: int
    comments: Optional[str] = None
    created_at: datetime


class RatingSubmissionResponse(BaseModel):
    message: str
    ratings: List[RatingOut]


# ---------------------------------------------------------------------------
# Complaints
# ---------------------------------------------------------------------------

class ComplaintCreate(BaseModel):
    complainant_name: str = Field(min_length=2, max_length=120)
    complainant_email: EmailStr
    complainant_phone: str = Field(min_length=10, max_length=30)
    policy_number: Optional[str] = Field(default=None, max_length=60)
    complaint_type: ComplaintType
    subject: str = Field(min_length=5, max_length=255)
    description: str = Field(min_length=10)
    priority: Priority = "medium"
    agent_id: Optional[RecordId] = None
    employee_id: Optional[RecordId] = None


class ComplaintUpdate(BaseModel):
    status: Optional[ComplaintStatus] = None
    priority: Optional[Priority] = None
    resolution: Optional[str] = None

    @field_validator("status", "priority")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    @model_validator(mode="after")
    def at_least_one_field(self) -> "ComplaintUpdate":
        if not self.model_fields_set:
            raise ValueError("Provide at least one of status, priority or resolution")
        return self


class ComplaintOut(ORMModel):
    id: int
    complainant_name: str
    complainant_email: str
    complainant_phone: str
    policy_number: Optional[str] = None
    agent_id: Optional[int] = None
    employee_id: Optional[int] = None
    complaint_type: ComplaintType
    subject: str
    description: str
    status: ComplaintStatus
    priority: Priority
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# QR resolution
# ---------------------------------------------------------------------------

class QRResolveRequest(BaseModel):
    payload: str


class QRResolveResponse(BaseModel):
    kind: Kind
    id: int
    rate_path: str


class RatingForm(BaseModel):
    """Everything the public rating page needs after a scan."""

    profile: ProfileSummary
    questions: List[QuestionOut]


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------

class RecentComplaint(ORMModel):
    id: int
    subject: str
    complainant_name: str
    status: ComplaintStatus
    created_at: datetime


class AdminDashboard(BaseModel):
    total_agents: int
    total_employees: int
    total_ratings: int
    total_complaints: int
    pending_approvals: int
    average_rating: Optional[float] = None
    recent_ratings: List[RatingOut]
    recent_complaints: List[RecentComplaint]


class StaffDashboard(BaseModel):
    total_ratings: int
    average_rating: Optional[float] = None
    total_complaints: int
    pending_complaints: int
    recent_ratings: List[RatingOut]
    recent_complaints: List[RecentComplaint]


class DashboardProfile(BaseModel):
    user: UserOut
    type: Literal["admin", "agent", "employee"]
    profile: Optional[ProfileSummary] = None
