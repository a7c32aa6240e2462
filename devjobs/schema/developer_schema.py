from pydantic import BaseModel, Field, HttpUrl, field_validator
from typing import List, Optional, Dict
from uuid import UUID
from datetime import datetime

MAX_OTHER_LINKS = 5


class DeveloperProfileUpdate(BaseModel):
    summary: Optional[str] = Field(None, max_length=2000)
    github_url: Optional[HttpUrl] = None
    linkedin_url: Optional[HttpUrl] = None
    portfolio_url: Optional[HttpUrl] = None
    other_links: Optional[List[HttpUrl]] = None

    @field_validator("github_url", "linkedin_url", "portfolio_url")
    @classmethod
    def validate_url_length(cls, v):
        if v is not None and len(str(v)) > 255:
            raise ValueError("URL cannot exceed 255 characters")
        return v

    @field_validator("other_links")
    @classmethod
    def validate_other_links(cls, v):
        if v is None:
            return v
        if len(v) > MAX_OTHER_LINKS:
            raise ValueError(f"You can add up to {MAX_OTHER_LINKS} links")
        for link in v:
            if len(str(link)) > 255:
                raise ValueError("URL cannot exceed 255 characters")
        return v

    def to_fields(self) -> Dict:
        """Column values with URLs as plain strings"""
        data = self.model_dump(exclude_unset=True)
        for key in ("github_url", "linkedin_url", "portfolio_url"):
            if key in data and data[key] is not None:
                data[key] = str(data[key])
        if data.get("other_links") is not None:
            data["other_links"] = [str(link) for link in data["other_links"]]
        return data


class DeveloperProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    summary: Optional[str]
    has_cv: bool = False
    profile_photo_url: Optional[str]
    github_url: Optional[str]
    linkedin_url: Optional[str]
    portfolio_url: Optional[str]
    other_links: List[str] = []
    profile_complete: bool = False
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_profile(cls, profile) -> "DeveloperProfileResponse":
        response = cls.model_validate(profile)
        response.has_cv = bool(profile.cv_path)
        response.profile_complete = profile.is_complete()
        return response


class DeveloperDashboardResponse(BaseModel):
    applications: Dict[str, int]
    profile_complete: bool
    recent_applications: List[Dict]
