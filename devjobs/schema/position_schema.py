from pydantic import BaseModel, Field, HttpUrl, field_validator, model_validator
from uuid import UUID
from typing import List, Optional, Dict, Any, Literal
from datetime import datetime
from devjobs.models.position import PositionStatus, ListingType, Seniority, RemoteType
from devjobs.utils.dates import utcnow, as_utc

MAX_CUSTOM_QUESTIONS = 10


class CustomQuestionIn(BaseModel):
    id: Optional[UUID] = None
    question_text: str = Field(..., min_length=1, max_length=1000)
    is_required: bool = False
    order: Optional[int] = Field(None, ge=0)
    destroy: bool = False


class PositionBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    short_description: str = Field(..., min_length=1, max_length=500)
    long_description: str = Field(..., min_length=1)
    company_id: UUID
    seniority: Optional[Seniority] = None
    salary_min: Optional[int] = Field(None, ge=0, le=9999999)
    salary_max: Optional[int] = Field(None, ge=0, le=9999999)
    remote_type: RemoteType = RemoteType.GLOBAL
    location_restriction: Optional[str] = Field(None, max_length=255)
    is_external: bool = False
    external_apply_url: Optional[HttpUrl] = None
    allow_platform_applications: bool = True
    technology_ids: List[UUID] = []
    custom_questions: List[CustomQuestionIn] = Field(default_factory=list, max_length=MAX_CUSTOM_QUESTIONS)

    @field_validator("title", "short_description", "long_description")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate that string fields are not empty"""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_consistency(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_max < self.salary_min:
            raise ValueError("The maximum salary must be greater than or equal to the minimum salary.")
        if self.remote_type in (RemoteType.TIMEZONE, RemoteType.COUNTRY) and not self.location_restriction:
            raise ValueError("Location restriction is required when remote type is timezone or country.")
        if self.is_external and not self.external_apply_url:
            raise ValueError("External application URL is required when position is marked as external.")
        return self

    def to_fields(self) -> Dict[str, Any]:
        data = self.model_dump()
        if data.get("external_apply_url") is not None:
            data["external_apply_url"] = str(data["external_apply_url"])
        data["custom_questions"] = [question.model_dump() for question in self.custom_questions]
        return data


class PositionCreate(PositionBase):
    """HR input; admin-only fields are ignored for HR users"""
    status: Optional[PositionStatus] = None
    listing_type: Optional[ListingType] = None
    expires_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[PositionStatus]) -> Optional[PositionStatus]:
        if v is not None and v not in (PositionStatus.DRAFT, PositionStatus.PUBLISHED):
            raise ValueError("New positions can only be draft or published.")
        return v

    @field_validator("expires_at")
    @classmethod
    def validate_expiry(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and as_utc(v) <= utcnow():
            raise ValueError("The expiration date must be in the future.")
        return v


class PositionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    short_description: Optional[str] = Field(None, min_length=1, max_length=500)
    long_description: Optional[str] = Field(None, min_length=1)
    company_id: Optional[UUID] = None
    seniority: Optional[Seniority] = None
    salary_min: Optional[int] = Field(None, ge=0, le=9999999)
    salary_max: Optional[int] = Field(None, ge=0, le=9999999)
    remote_type: Optional[RemoteType] = None
    location_restriction: Optional[str] = Field(None, max_length=255)
    is_external: Optional[bool] = None
    external_apply_url: Optional[HttpUrl] = None
    allow_platform_applications: Optional[bool] = None
    technology_ids: Optional[List[UUID]] = None
    custom_questions: Optional[List[CustomQuestionIn]] = Field(None, max_length=MAX_CUSTOM_QUESTIONS)

    # Admin only
    status: Optional[PositionStatus] = None
    expires_at: Optional[datetime] = None
    listing_type: Optional[ListingType] = None

    @model_validator(mode="after")
    def validate_salary(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_max < self.salary_min:
            raise ValueError("The maximum salary must be greater than or equal to the minimum salary.")
        return self

    def to_fields(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        if data.get("external_apply_url") is not None:
            data["external_apply_url"] = str(data["external_apply_url"])
        if self.custom_questions is not None:
            data["custom_questions"] = [question.model_dump() for question in self.custom_questions]
        return data


# ----------------- Admin moderation -----------------
class ListingTypeUpdate(BaseModel):
    listing_type: ListingType


class ExtendExpiration(BaseModel):
    days: int = Field(..., ge=1, le=365)


class BulkPositionAction(BaseModel):
    action: Literal["feature", "unfeature", "archive", "delete"]
    position_ids: List[UUID] = Field(..., min_length=1)


# ----------------- Responses -----------------
class TechnologyBrief(BaseModel):
    id: UUID
    name: str
    slug: str
    icon: Optional[str] = None

    model_config = {"from_attributes": True}


class CustomQuestionResponse(BaseModel):
    id: UUID
    question_text: str
    is_required: bool
    order: int

    model_config = {"from_attributes": True}


class CompanyBrief(BaseModel):
    id: UUID
    name: str
    slug: str
    logo_url: Optional[str] = None

    model_config = {"from_attributes": True}


class PositionResponse(BaseModel):
    id: UUID
    title: str
    slug: str
    short_description: Optional[str]
    long_description: str
    company_id: UUID
    company: Optional[CompanyBrief] = None
    created_by_user_id: Optional[UUID]
    seniority: Optional[Seniority]
    salary_min: Optional[int]
    salary_max: Optional[int]
    remote_type: RemoteType
    location_restriction: Optional[str]
    status: PositionStatus
    listing_type: ListingType
    is_external: bool
    external_apply_url: Optional[str]
    allow_platform_applications: bool
    expires_at: Optional[datetime]
    published_at: Optional[datetime]
    paid_at: Optional[datetime]
    technologies: List[TechnologyBrief] = []
    custom_questions: List[CustomQuestionResponse] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HrPositionListItem(PositionResponse):
    payment_status: str = "unpaid"
    applications_count: int = 0


class PositionDetailResponse(BaseModel):
    position: PositionResponse
    application_stats: Dict[str, int]
    analytics: Dict[str, Any]
    upgrade_options: Dict[str, Dict[str, Any]]
    pricing: Dict[str, float]


class PublicPositionResponse(PositionResponse):
    accepting_applications: bool = False
    has_applied: bool = False


class PaginatedPositions(BaseModel):
    items: List[PositionResponse]
    total: int
    page: int
    pages: int
    has_next: bool
    has_prev: bool
