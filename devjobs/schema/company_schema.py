from pydantic import BaseModel, Field, HttpUrl
from typing import Optional, Dict
from uuid import UUID
from datetime import datetime
from devjobs.models.company import CompanyMemberRole


class CompanySocialLinks(BaseModel):
    twitter: Optional[HttpUrl] = None
    linkedin: Optional[HttpUrl] = None
    github: Optional[HttpUrl] = None


class CompanySetup(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    website: Optional[HttpUrl] = None
    social_links: Optional[CompanySocialLinks] = None

    def to_fields(self) -> Dict:
        data = self.model_dump(exclude_unset=True, exclude={"website", "social_links"})
        if self.website is not None:
            data["website"] = str(self.website)
        if self.social_links is not None:
            data["social_links"] = {
                key: str(value) for key, value in self.social_links.model_dump().items() if value is not None
            }
        return data


class CompanyUpdate(CompanySetup):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)


class CompanyResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    description: Optional[str]
    website: Optional[str]
    logo_url: Optional[str]
    social_links: Dict[str, str] = {}
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CompanyListItem(CompanyResponse):
    positions_count: int = 0


# ----------------- Admin team management -----------------
class CompanyMemberAttach(BaseModel):
    user_id: UUID
    role: CompanyMemberRole = CompanyMemberRole.MEMBER


class CompanyMemberRoleUpdate(BaseModel):
    role: CompanyMemberRole


class CompanyMemberResponse(BaseModel):
    user_id: UUID
    role: CompanyMemberRole
    joined_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
