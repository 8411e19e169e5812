"""User, auth, profile and onboarding schemas."""

import re
import uuid
from datetime import datetime

from fastapi_users import schemas
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from devstack.schemas.normalize import optional_url

RESERVED_USERNAMES = frozenset(
    {
        "admin", "administrator", "api", "app", "auth", "blog", "dashboard", "dev",
        "help", "mail", "root", "support", "test", "www", "ftp", "email", "webmail",
        "login", "register", "signup", "signin", "signout", "logout", "profile",
        "settings", "account", "billing", "payment", "invoice", "subscribe",
        "unsubscribe", "terms", "privacy", "policy", "about", "contact", "home",
        "index", "static", "assets", "css", "js", "img", "images", "fonts",
        "downloads", "uploads", "files", "docs", "documentation", "guides",
        "tutorials", "news", "posts", "articles", "events", "security", "legal",
        "abuse", "spam", "phishing", "fraud", "scam", "fake", "null", "undefined",
        "true", "false", "void", "empty", "none", "all", "any",
    }
)  # fmt: skip

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
DISPLAY_NAME_RE = re.compile(r"^[a-zA-Z0-9\s\-_.]+$")
# Hex (#rgb, #rrggbb, #rrggbbaa) or a CSS named colour; rendered into a <style> block
THEME_COLOR_RE = re.compile(
    r"^(#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})|[a-zA-Z]{3,20})$"
)

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100


def password_problems(password: str) -> list[str]:
    """Return the strength rules ``password`` breaks (empty when valid)."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        problems.append(f"Password must be at most {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    return problems


def check_username(value: str) -> str:
    """Normalize a username to lowercase and enforce the format rules."""
    value = value.strip()
    if not 3 <= len(value) <= 30:
        raise ValueError("Username must be between 3 and 30 characters")
    if not USERNAME_RE.match(value):
        raise ValueError("Username can only contain letters, numbers, hyphens, and underscores")
    if value[0] in "-_" or value[-1] in "-_":
        raise ValueError("Username cannot start or end with a hyphen or underscore")
    return value.lower()


def check_display_name(value: str) -> str:
    value = value.strip()
    if not 1 <= len(value) <= 50:
        raise ValueError("Display name must be between 1 and 50 characters")
    if not DISPLAY_NAME_RE.match(value):
        raise ValueError("Display name contains invalid characters")
    return value


def is_reserved_username(username: str) -> bool:
    return username.lower() in RESERVED_USERNAMES


class UserRead(schemas.BaseUser[uuid.UUID]):
    """Schema for reading the authenticated user."""

    username: str
    display_name: str | None = None
    plan: str = "free"
    is_public: bool = False
    onboarding_completed: bool = False
    email_verified_at: datetime | None = None
    created_at: datetime


class UserCreate(schemas.BaseUserCreate):
    """Internal create payload handed to the fastapi-users manager."""

    username: str
    display_name: str | None = None


class RegisterRequest(BaseModel):
    """Sign-up form."""

    email: EmailStr
    password: str
    confirm_password: str
    username: str
    display_name: str
    agree_to_terms: bool

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        problems = password_problems(v)
        if problems:
            raise ValueError(problems[0])
        return v

    @field_validator("username")
    @classmethod
    def valid_username(cls, v: str) -> str:
        return check_username(v)

    @field_validator("display_name")
    @classmethod
    def valid_display_name(cls, v: str) -> str:
        return check_display_name(v)

    @field_validator("agree_to_terms")
    @classmethod
    def terms_accepted(cls, v: bool) -> bool:
        if not v:
            raise ValueError("You must agree to the terms and conditions")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class EmailRequest(BaseModel):
    """Forgot-password and resend-verification payload."""

    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        problems = password_problems(v)
        if problems:
            raise ValueError(problems[0])
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class RegisterResult(BaseModel):
    message: str
    user_id: uuid.UUID
    email: str
    username: str


class TokenCheck(BaseModel):
    valid: bool
    email: str | None = None


class AuthStatus(BaseModel):
    """Summary shown by the dashboard shell."""

    authenticated: bool
    user: UserRead | None = None
    project_count: int = 0
    total_views: int = 0
    has_completed_profile: bool = False
    profile_completeness: int = 0


class ProfileRead(BaseModel):
    """The authenticated user's editable profile."""

    id: uuid.UUID
    email: str
    username: str
    display_name: str | None
    bio: str | None
    job_title: str | None
    location: str | None
    avatar_url: str | None
    website: str | None
    github_url: str | None
    linkedin_url: str | None
    twitter_url: str | None
    resume_url: str | None
    theme_color: str
    template_id: str
    theme_id: str
    plan: str
    is_public: bool
    looking_for_work: bool
    onboarding_completed: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    """Partial profile update; blank optional fields clear the value."""

    username: str | None = None
    display_name: str | None = Field(None, max_length=50)
    bio: str | None = Field(None, max_length=500)
    job_title: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=100)
    avatar_url: str | None = None
    website: str | None = None
    github_url: str | None = None
    linkedin_url: str | None = None
    twitter_url: str | None = None
    resume_url: str | None = None
    theme_color: str | None = Field(None, max_length=20)
    template_id: str | None = Field(None, max_length=50)
    theme_id: str | None = Field(None, max_length=50)
    is_public: bool | None = None
    looking_for_work: bool | None = None

    @field_validator("username")
    @classmethod
    def valid_username(cls, v: str | None) -> str | None:
        return check_username(v) if v is not None else None

    @field_validator("theme_color")
    @classmethod
    def valid_theme_color(cls, v: str | None) -> str | None:
        # Blank behaves like null: the stored color is kept
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not THEME_COLOR_RE.match(v):
            raise ValueError("Theme color must be a hex value or a color name")
        return v

    @field_validator(
        "avatar_url", "website", "github_url", "linkedin_url", "twitter_url", "resume_url"
    )
    @classmethod
    def valid_url(cls, v: str | None) -> str | None:
        return optional_url(v)


class BasicInfo(BaseModel):
    display_name: str
    job_title: str = Field(..., min_length=1, max_length=100)
    bio: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=100)

    @field_validator("display_name")
    @classmethod
    def valid_display_name(cls, v: str) -> str:
        return check_display_name(v)


class SocialLinks(BaseModel):
    website: str | None = None
    github_url: str | None = None
    linkedin_url: str | None = None
    twitter_url: str | None = None
    resume_url: str | None = None

    @field_validator("*")
    @classmethod
    def valid_url(cls, v: str | None) -> str | None:
        return optional_url(v)


class OnboardingRequest(BaseModel):
    """Payload submitted at the end of the onboarding wizard."""

    basic_info: BasicInfo
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    selected_template: str = Field("minimal", max_length=50)
    selected_theme: str = Field("ocean", max_length=50)
    looking_for_work: bool = True


class OnboardingResult(BaseModel):
    message: str
    portfolio_url: str
    user: ProfileRead
