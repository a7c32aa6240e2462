from pydantic import BaseModel, Field
from typing import Optional, Dict
from uuid import UUID
from datetime import datetime
from devjobs.models.application import ApplicationStatus


class ApplicationCreate(BaseModel):
    """Developer applies to a position"""
    cover_letter: Optional[str] = Field(None, max_length=5000)
    # question id -> answer
    custom_answers: Dict[str, Optional[str]] = {}


class ApplicationStatusUpdate(BaseModel):
    """HR review decision"""
    status: ApplicationStatus


class ApplicationResponse(BaseModel):
    id: UUID
    position_id: UUID
    user_id: UUID
    cover_letter: Optional[str]
    custom_answers: Dict[str, str] = {}
    status: ApplicationStatus
    reviewed_by_user_id: Optional[UUID] = None
    applied_at: datetime

    # Position details for the developer
    position_title: Optional[str] = None
    company_name: Optional[str] = None

    # Applicant details for HR
    applicant_name: Optional[str] = None
    applicant_email: Optional[str] = None
    user_archived: bool = False

    model_config = {"from_attributes": True}

    @classmethod
    def from_application(cls, application, include_applicant: bool = False) -> "ApplicationResponse":
        response = cls.model_validate(application)
        response.position_title = application.position.title
        response.company_name = application.position.company.name
        response.user_archived = application.user.is_trashed
        if include_applicant:
            response.applicant_name = application.user.name
            response.applicant_email = None if application.user.is_trashed else application.user.email
        return response
