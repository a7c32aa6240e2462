from devjobs.models.user import User, UserRole, AccountState
from devjobs.models.social_account import SocialAccount
from devjobs.models.developer_profile import DeveloperProfile
from devjobs.models.company import Company, CompanyMember, CompanyMemberRole
from devjobs.models.position import (
    Position, PositionStatus, ListingType, Seniority, RemoteType, position_technologies
)
from devjobs.models.custom_question import CustomQuestion
from devjobs.models.application import Application, ApplicationStatus
from devjobs.models.payment import Payment, PaymentStatus, PaymentType, PaymentProvider
from devjobs.models.technology import Technology
from devjobs.models.position_view import PositionView
from devjobs.models.notification import Notification

__all__ = [
    "User", "UserRole", "AccountState",
    "SocialAccount",
    "DeveloperProfile",
    "Company", "CompanyMember", "CompanyMemberRole",
    "Position", "PositionStatus", "ListingType", "Seniority", "RemoteType", "position_technologies",
    "CustomQuestion",
    "Application", "ApplicationStatus",
    "Payment", "PaymentStatus", "PaymentType", "PaymentProvider",
    "Technology",
    "PositionView",
    "Notification",
]
