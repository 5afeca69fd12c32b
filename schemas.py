"""
Database Schemas for the Architecture Portfolio Builder

Each Pydantic model represents a collection in MongoDB. The collection name is the
lowercase of the class name (e.g., Project -> "project", CVSkill -> "cvskill").
Assets are not a collection of their own: they live inside their project document.

The *Update variants are partial payloads for PUT routes.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _strip_blank(v):
    """Trim strings and treat '' as missing."""
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


def _date_only_to_datetime(v):
    if isinstance(v, str):
        t = v.strip()
        if _DATE_ONLY.match(t):
            return f"{t}T00:00:00+00:00"
        return t or None
    return v


def _not_null(v):
    """Partial updates may omit a required field but not clear it."""
    if v is None:
        raise ValueError("Field is required and cannot be null")
    return v


class StoredModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)


# Enumerations

class ProjectType(str, Enum):
    RESIDENTIAL = "RESIDENTIAL"
    COMMERCIAL = "COMMERCIAL"
    CULTURAL = "CULTURAL"
    EDUCATIONAL = "EDUCATIONAL"
    HEALTHCARE = "HEALTHCARE"
    HOSPITALITY = "HOSPITALITY"
    INDUSTRIAL = "INDUSTRIAL"
    LANDSCAPE = "LANDSCAPE"
    MIXED_USE = "MIXED_USE"
    PUBLIC = "PUBLIC"
    RELIGIOUS = "RELIGIOUS"
    RETAIL = "RETAIL"
    SPORTS = "SPORTS"
    TRANSPORT = "TRANSPORT"
    URBAN_PLANNING = "URBAN_PLANNING"
    OTHER = "OTHER"


class RibaStage(str, Enum):
    STAGE_0 = "STAGE_0_STRATEGIC_DEFINITION"
    STAGE_1 = "STAGE_1_PREPARATION_BRIEF"
    STAGE_2 = "STAGE_2_CONCEPT_DESIGN"
    STAGE_3 = "STAGE_3_SPATIAL_COORDINATION"
    STAGE_4 = "STAGE_4_TECHNICAL_DESIGN"
    STAGE_5 = "STAGE_5_MANUFACTURING_CONSTRUCTION"
    STAGE_6 = "STAGE_6_HANDOVER"
    STAGE_7 = "STAGE_7_USE"


class AssetType(str, Enum):
    IMAGE = "IMAGE"
    DRAWING = "DRAWING"
    DIAGRAM = "DIAGRAM"
    MODEL_PHOTO = "MODEL_PHOTO"
    RENDER = "RENDER"
    SKETCH = "SKETCH"


class DrawingType(str, Enum):
    PLAN = "PLAN"
    SECTION = "SECTION"
    ELEVATION = "ELEVATION"
    DETAIL = "DETAIL"
    AXONOMETRIC = "AXONOMETRIC"
    PERSPECTIVE = "PERSPECTIVE"
    SITE_PLAN = "SITE_PLAN"


class AssetSize(str, Enum):
    FULL_PAGE = "FULL_PAGE"
    HALF_PAGE = "HALF_PAGE"
    QUARTER_PAGE = "QUARTER_PAGE"
    THIRD_PAGE = "THIRD_PAGE"
    TWO_THIRDS_PAGE = "TWO_THIRDS_PAGE"


class SkillCategory(str, Enum):
    SOFTWARE = "SOFTWARE"
    TECHNICAL = "TECHNICAL"
    DESIGN = "DESIGN"
    MANAGEMENT = "MANAGEMENT"
    COMMUNICATION = "COMMUNICATION"
    OTHER = "OTHER"


class ProficiencyLevel(str, Enum):
    BASIC = "BASIC"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    EXPERT = "EXPERT"


class PortfolioType(str, Enum):
    SAMPLE = "SAMPLE"  # guideline: at most 12 pages
    FULL = "FULL"


class ColorSchemeName(str, Enum):
    classic = "classic"
    modernBlue = "modernBlue"
    warmMinimal = "warmMinimal"


# Projects

class Project(StoredModel):
    project_name: str = Field(..., min_length=1, max_length=200)
    project_type: ProjectType
    location: str = Field(..., min_length=1, max_length=200)
    year_start: int = Field(..., ge=1900, le=2100)
    year_completion: Optional[int] = Field(None, ge=1900, le=2100)
    client_name: Optional[str] = Field(None, max_length=200)
    practice_name: str = Field(..., min_length=1, max_length=200)
    project_value: Optional[float] = Field(None, gt=0, description="Construction value in GBP")
    project_size: Optional[float] = Field(None, gt=0, description="Floor area in m²")

    # Role & involvement
    role: str = Field(..., min_length=1, max_length=100)
    team_size: Optional[int] = Field(None, gt=0)
    responsibilities: List[str] = Field(default_factory=list)
    riba_stages: List[RibaStage] = Field(default_factory=list)

    # Narrative
    brief_description: str = Field(..., min_length=1, max_length=500)
    detailed_description: Optional[str] = Field(None, max_length=5000)
    design_approach: Optional[str] = Field(None, max_length=2000)
    key_challenges: Optional[str] = Field(None, max_length=2000)
    solutions_provided: Optional[str] = Field(None, max_length=2000)
    sustainability_features: Optional[str] = Field(None, max_length=2000)

    software_used: List[str] = Field(default_factory=list)
    skills_demonstrated: List[str] = Field(default_factory=list)

    # Metadata
    is_academic: bool = False
    is_competition: bool = False
    awards_received: List[str] = Field(default_factory=list)
    featured_priority: int = Field(5, ge=1, le=10)
    tags: List[str] = Field(default_factory=list)

    @field_validator("client_name", "detailed_description", "design_approach", "key_challenges",
                     "solutions_provided", "sustainability_features", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_blank(v)


class ProjectUpdate(StoredModel):
    project_name: Optional[str] = Field(None, min_length=1, max_length=200)
    project_type: Optional[ProjectType] = None
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    year_start: Optional[int] = Field(None, ge=1900, le=2100)
    year_completion: Optional[int] = Field(None, ge=1900, le=2100)
    client_name: Optional[str] = Field(None, max_length=200)
    practice_name: Optional[str] = Field(None, min_length=1, max_length=200)
    project_value: Optional[float] = Field(None, gt=0)
    project_size: Optional[float] = Field(None, gt=0)
    role: Optional[str] = Field(None, min_length=1, max_length=100)
    team_size: Optional[int] = Field(None, gt=0)
    responsibilities: Optional[List[str]] = None
    riba_stages: Optional[List[RibaStage]] = None
    brief_description: Optional[str] = Field(None, min_length=1, max_length=500)
    detailed_description: Optional[str] = Field(None, max_length=5000)
    design_approach: Optional[str] = Field(None, max_length=2000)
    key_challenges: Optional[str] = Field(None, max_length=2000)
    solutions_provided: Optional[str] = Field(None, max_length=2000)
    sustainability_features: Optional[str] = Field(None, max_length=2000)
    software_used: Optional[List[str]] = None
    skills_demonstrated: Optional[List[str]] = None
    is_academic: Optional[bool] = None
    is_competition: Optional[bool] = None
    awards_received: Optional[List[str]] = None
    featured_priority: Optional[int] = Field(None, ge=1, le=10)
    tags: Optional[List[str]] = None

    @field_validator("project_name", "project_type", "location", "year_start", "practice_name", "role",
                     "brief_description", "responsibilities", "riba_stages", "software_used",
                     "skills_demonstrated", "is_academic", "is_competition", "awards_received",
                     "featured_priority", "tags", mode="before")
    @classmethod
    def required_not_null(cls, v):
        return _not_null(v)

    @field_validator("client_name", "detailed_description", "design_approach", "key_challenges",
                     "solutions_provided", "sustainability_features", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_blank(v)


# Assets (embedded in Project.assets)

class Asset(StoredModel):
    asset_type: AssetType = AssetType.IMAGE
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: Optional[str] = Field(None, description="Stored path as written by the upload step")
    file_size: int = Field(0, ge=0)
    mime_type: str = Field("image/jpeg", max_length=100)
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    title: Optional[str] = Field(None, max_length=200)
    caption: Optional[str] = Field(None, max_length=500)
    drawing_type: Optional[DrawingType] = None
    scale: Optional[str] = Field(None, max_length=50)
    stage: Optional[RibaStage] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_hero_image: bool = False
    preferred_size: Optional[AssetSize] = None
    can_be_cropped: bool = True
    focal_point_x: Optional[float] = Field(None, ge=0, le=1)
    focal_point_y: Optional[float] = Field(None, ge=0, le=1)


class AssetUpdate(StoredModel):
    title: Optional[str] = Field(None, max_length=200)
    caption: Optional[str] = Field(None, max_length=500)
    asset_type: Optional[AssetType] = None
    drawing_type: Optional[DrawingType] = None
    scale: Optional[str] = Field(None, max_length=50)
    stage: Optional[RibaStage] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_hero_image: Optional[bool] = None
    preferred_size: Optional[AssetSize] = None
    can_be_cropped: Optional[bool] = None
    focal_point_x: Optional[float] = Field(None, ge=0, le=1)
    focal_point_y: Optional[float] = Field(None, ge=0, le=1)

    @field_validator("asset_type", "can_be_cropped", mode="before")
    @classmethod
    def required_not_null(cls, v):
        return _not_null(v)


class AssetOrder(BaseModel):
    id: str
    display_order: int = Field(..., ge=0)


class AssetReorder(BaseModel):
    assets: List[AssetOrder]


# CV

class PersonalInfo(StoredModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    professional_title: Optional[str] = Field(None, min_length=1, max_length=200)
    arb_number: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    linkedin_url: Optional[str] = Field(None, max_length=500)
    website_url: Optional[str] = Field(None, max_length=500)
    professional_summary: Optional[str] = Field(None, max_length=1000)
    career_objectives: Optional[str] = Field(None, max_length=1000)

    @field_validator("arb_number", "email", "phone", "location", "professional_summary",
                     "career_objectives", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_blank(v)

    @field_validator("linkedin_url", "website_url", mode="before")
    @classmethod
    def add_scheme(cls, v):
        v = _strip_blank(v)
        if isinstance(v, str) and not re.match(r"^https?://", v, re.IGNORECASE):
            v = f"https://{v}"
        return v


class CVExperience(StoredModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    position_title: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    start_date: datetime
    end_date: Optional[datetime] = None
    is_current: bool = False
    description: str = Field(..., min_length=1, max_length=2000)
    key_projects: List[str] = Field(default_factory=list)
    key_achievements: List[str] = Field(default_factory=list)
    display_order: int = Field(0, ge=0)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, v):
        return _date_only_to_datetime(v)


class CVExperienceUpdate(StoredModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    position_title: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_current: Optional[bool] = None
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    key_projects: Optional[List[str]] = None
    key_achievements: Optional[List[str]] = None
    display_order: Optional[int] = Field(None, ge=0)

    @field_validator("company_name", "position_title", "location", "is_current", "description",
                     "key_projects", "key_achievements", "display_order", mode="before")
    @classmethod
    def required_not_null(cls, v):
        return _not_null(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, v, info: ValidationInfo):
        v = _date_only_to_datetime(v)
        if info.field_name == "start_date":
            return _not_null(v)
        return v


class CVEducation(StoredModel):
    institution_name: str = Field(..., min_length=1, max_length=200)
    degree_type: str = Field(..., min_length=1, max_length=100)
    field_of_study: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    start_date: datetime
    end_date: Optional[datetime] = None
    grade: Optional[str] = Field(None, max_length=100)
    relevant_coursework: List[str] = Field(default_factory=list)
    display_order: int = Field(0, ge=0)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, v):
        return _date_only_to_datetime(v)


class CVEducationUpdate(StoredModel):
    institution_name: Optional[str] = Field(None, min_length=1, max_length=200)
    degree_type: Optional[str] = Field(None, min_length=1, max_length=100)
    field_of_study: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    grade: Optional[str] = Field(None, max_length=100)
    relevant_coursework: Optional[List[str]] = None
    display_order: Optional[int] = Field(None, ge=0)

    @field_validator("institution_name", "degree_type", "field_of_study", "location",
                     "relevant_coursework", "display_order", mode="before")
    @classmethod
    def required_not_null(cls, v):
        return _not_null(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, v, info: ValidationInfo):
        v = _date_only_to_datetime(v)
        if info.field_name == "start_date":
            return _not_null(v)
        return v


class CVSkill(StoredModel):
    category: SkillCategory
    skill_name: str = Field(..., min_length=1, max_length=100)
    proficiency_level: ProficiencyLevel
    years_experience: Optional[float] = Field(None, ge=0, le=50)
    display_order: int = Field(0, ge=0)


class CVSkillUpdate(StoredModel):
    category: Optional[SkillCategory] = None
    skill_name: Optional[str] = Field(None, min_length=1, max_length=100)
    proficiency_level: Optional[ProficiencyLevel] = None
    years_experience: Optional[float] = Field(None, ge=0, le=50)
    display_order: Optional[int] = Field(None, ge=0)

    @field_validator("category", "skill_name", "proficiency_level", "display_order", mode="before")
    @classmethod
    def required_not_null(cls, v):
        return _not_null(v)


# Appearance

class Margins(BaseModel):
    top: Optional[float] = Field(None, ge=0, le=40)
    bottom: Optional[float] = Field(None, ge=0, le=40)
    left: Optional[float] = Field(None, ge=0, le=40)
    right: Optional[float] = Field(None, ge=0, le=40)


class LayoutSizes(BaseModel):
    """Heights in millimeters for the project page blocks."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    hero_height_mm: Optional[float] = Field(None, gt=0, le=297)
    strip_height_mm: Optional[float] = Field(None, gt=0, le=297)
    tech_height_mm: Optional[float] = Field(None, gt=0, le=297)
    thumb_height_mm: Optional[float] = Field(None, gt=0, le=297)


class PortfolioSettings(LayoutSizes):
    """Per-portfolio overrides; anything left out falls back to AppSettings."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              use_enum_values=True, extra="allow")

    color_scheme: Optional[ColorSchemeName] = None
    margins: Optional[Margins] = None


class AppSettings(LayoutSizes):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              use_enum_values=True)

    color_scheme: Optional[ColorSchemeName] = None
    margins: Optional[Margins] = None


# Portfolios

class PortfolioTemplate(StoredModel):
    template_name: str = Field(..., min_length=1, max_length=200)
    layout_style: str = Field("swiss-minimal", max_length=100)
    fonts_config: Dict[str, Any] = Field(default_factory=dict)
    color_scheme: Dict[str, Any] = Field(default_factory=dict)
    page_layouts: Dict[str, Any] = Field(default_factory=dict)
    margins_config: Dict[str, Any] = Field(default_factory=dict)
    is_default: bool = False


class PortfolioProjectLink(StoredModel):
    project_id: str
    display_order: int = Field(0, ge=0)
    included_assets: List[str] = Field(default_factory=list, description="Empty means every asset")
    hero_asset_id: Optional[str] = None


class Portfolio(StoredModel):
    portfolio_name: str = Field(..., min_length=1, max_length=200)
    portfolio_type: PortfolioType = PortfolioType.FULL
    template_id: Optional[str] = None
    cv_included: bool = False
    projects: List[PortfolioProjectLink] = Field(default_factory=list)
    settings: PortfolioSettings = Field(default_factory=PortfolioSettings)

    def to_document(self) -> dict:
        data = self.model_dump(exclude={"settings"})
        data["settings"] = self.settings.model_dump(by_alias=True, exclude_none=True)
        data.update(file_path=None, file_size=None, total_pages=None)
        return data


class PortfolioUpdate(StoredModel):
    """PUT payload; ``projects`` and ``settings`` replace the stored values wholesale."""
    portfolio_name: Optional[str] = Field(None, min_length=1, max_length=200)
    portfolio_type: Optional[PortfolioType] = None
    template_id: Optional[str] = None
    cv_included: Optional[bool] = None
    projects: Optional[List[PortfolioProjectLink]] = None
    settings: Optional[PortfolioSettings] = None

    @field_validator("portfolio_name", "portfolio_type", "cv_included", "projects", "settings", mode="before")
    @classmethod
    def required_not_null(cls, v):
        return _not_null(v)

    def to_changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True, exclude={"settings"})
        if "settings" in self.model_fields_set:
            changes["settings"] = self.settings.model_dump(by_alias=True, exclude_none=True)
        return changes


class PortfolioProjectAdd(StoredModel):
    project_id: str
    display_order: Optional[int] = Field(None, ge=0, description="Defaults to the end of the list")
    included_assets: List[str] = Field(default_factory=list)
    hero_asset_id: Optional[str] = None
