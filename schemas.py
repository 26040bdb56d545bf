"""
Database Schemas for the Portfolio CMS

Each Pydantic model = one MongoDB collection (lowercased class name), plus the
request bodies of the admin API. Fields are snake_case in Python and MongoDB
and camelCase on the wire; either spelling is accepted on input.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional, get_args

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# Enumerations
ProjectCategory = Literal["Web", "UI", "Fullstack", "Research", "Mobile", "Desktop", "API", "Other"]
ProjectStatus = Literal["completed", "in-progress", "on-hold", "cancelled"]
SkillCategory = Literal[
    "frontend", "backend", "database", "devops", "tools", "languages",
    "frameworks", "cloud", "mobile", "uiux", "other",
]
Proficiency = Literal["beginner", "intermediate", "advanced", "expert"]
HighlightCategory = Literal[
    "ui-design", "ux-research", "mobile-app", "web-design", "branding",
    "prototype", "wireframe", "user-testing", "other",
]
IconPack = Literal[
    "fa", "si", "di", "ai", "bi", "bs", "fi", "gi", "go", "gr",
    "hi", "im", "io", "io5", "md", "ri", "tb", "ti", "vsc", "wi",
]
AdminRole = Literal["admin", "super_admin"]
MessageStatus = Literal["unread", "read", "replied"]

PROJECT_CATEGORIES = list(get_args(ProjectCategory))
SKILL_CATEGORIES = list(get_args(SkillCategory))
HIGHLIGHT_CATEGORIES = list(get_args(HighlightCategory))
MESSAGE_STATUSES = list(get_args(MessageStatus))


# Auth
class Admin(CamelModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password_hash: str
    role: AdminRole = "admin"
    is_active: bool = True
    last_login: Optional[datetime] = None


class LoginRequest(CamelModel):
    username: str = Field(..., description="Username or email")
    password: str


class AdminCreate(CamelModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: AdminRole = "admin"


class AdminStatusUpdate(CamelModel):
    is_active: bool


class PasswordChange(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


# Shared content parts
class ImageRef(CamelModel):
    url: str
    caption: Optional[str] = Field(None, max_length=200)
    alt: Optional[str] = Field(None, max_length=200)


class ContentMetrics(CamelModel):
    views: int = 0
    likes: int = 0
    shares: int = 0
    downloads: int = 0


class SeoMetadata(CamelModel):
    meta_title: Optional[str] = Field(None, max_length=60)
    meta_description: Optional[str] = Field(None, max_length=160)
    keywords: List[str] = []


# Content
class Project(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    short_description: Optional[str] = Field(None, max_length=200)
    technologies: List[str] = Field(..., min_length=1)
    image_url: str
    images: List[ImageRef] = []
    github_url: str
    live_url: Optional[str] = None
    demo_url: Optional[str] = None
    category: ProjectCategory
    featured: bool = False
    status: ProjectStatus = "completed"
    priority: int = Field(0, ge=0, le=10)
    completion_date: datetime
    start_date: Optional[datetime] = None
    challenges: List[str] = []
    solutions: List[str] = []
    features: List[str] = []
    tags: List[str] = []
    metrics: ContentMetrics = Field(default_factory=ContentMetrics)
    seo_metadata: Optional[SeoMetadata] = None


class SkillIcon(CamelModel):
    """Icon pack code, icon name and rendering hints; no front-end library names."""
    pack: IconPack = Field(..., validation_alias=AliasChoices("pack", "library"))
    name: str = Field(..., min_length=1, max_length=100)
    size: int = Field(24, ge=12, le=200)
    class_name: Optional[str] = Field(None, max_length=200)

    @field_validator("pack", mode="before")
    @classmethod
    def strip_library_prefix(cls, v):
        # older clients send "react-icons/fa"
        if isinstance(v, str) and "/" in v:
            return v.rsplit("/", 1)[1]
        return v


class Certification(CamelModel):
    name: Optional[str] = Field(None, max_length=200)
    issuer: Optional[str] = Field(None, max_length=100)
    date: Optional[datetime] = None
    url: Optional[str] = Field(None, max_length=500)


class Skill(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: SkillCategory
    proficiency: Proficiency
    proficiency_level: int = Field(..., ge=1, le=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[SkillIcon] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    display_order: Optional[int] = Field(None, ge=0)
    is_active: bool = True
    years_of_experience: Optional[float] = Field(None, ge=0, le=50)
    projects: List[str] = []
    certifications: List[Certification] = []


class Journey(CamelModel):
    year: int = Field(..., ge=1900)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    display_order: Optional[int] = Field(None, ge=0)

    @field_validator("year")
    @classmethod
    def not_too_far_ahead(cls, v):
        limit = datetime.now(timezone.utc).year + 10
        if v > limit:
            raise ValueError(f"Year cannot be later than {limit}")
        return v


class UserFeedback(CamelModel):
    feedback: Optional[str] = Field(None, max_length=500)
    rating: Optional[int] = Field(None, ge=1, le=5)
    user_name: Optional[str] = Field(None, max_length=100)


class Highlight(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    short_description: Optional[str] = Field(None, max_length=300)
    image_url: str
    images: List[ImageRef] = []
    category: HighlightCategory
    tools: List[str] = []
    project_url: Optional[str] = None
    behance_url: Optional[str] = None
    dribbble_url: Optional[str] = None
    figma_url: Optional[str] = None
    tags: List[str] = []
    featured: bool = False
    is_active: bool = True
    display_order: Optional[int] = Field(None, ge=0)
    completion_date: datetime
    client_name: Optional[str] = Field(None, max_length=100)
    project_duration: Optional[str] = Field(None, max_length=100)
    challenges: List[str] = []
    solutions: List[str] = []
    key_features: List[str] = []
    user_feedback: List[UserFeedback] = []
    metrics: ContentMetrics = Field(default_factory=ContentMetrics)
    seo_metadata: Optional[SeoMetadata] = None


class Resume(CamelModel):
    """Resume metadata; the file itself lives next to it as file_data."""
    title: str = Field(..., min_length=1, max_length=200)
    version: str = Field("1.0", min_length=1)
    description: Optional[str] = Field(None, max_length=500)
    tags: List[str] = []
    is_active: bool = True
    is_public: bool = True


# Contact
class Contact(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)


class MessageStatusUpdate(CamelModel):
    status: MessageStatus


class ReplyRequest(CamelModel):
    reply_message: str = Field(..., min_length=1)
    reply_subject: Optional[str] = None


class PageView(CamelModel):
    page: str = "/"
    referrer: Optional[str] = None
    user_agent: Optional[str] = None


# Batch requests
class BulkRequest(CamelModel):
    action: str
    ids: List[str] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("ids", "projectIds", "skillIds", "highlightIds", "messageIds"),
    )


class ReorderRequest(CamelModel):
    category: Optional[SkillCategory] = None
    ids: List[str] = Field(
        ...,
        validation_alias=AliasChoices("ids", "skillIds", "journeyIds", "highlightIds"),
    )
