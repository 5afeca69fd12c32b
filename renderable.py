"""
Render-ready documents built from the stored records.

A renderable document is the single JSON shape consumed by the layout engine,
the JSON preview endpoints and the print routes, so the three always agree.
Keys are camelCase on the wire; absent values are serialized as explicit null.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from bson import ObjectId
from pydantic import Field

from appearance import ColorScheme, ResolvedMargins, ResolvedSizes, WireModel, resolve_appearance
from asset_paths import asset_web_path
from database import get_app_settings, get_collection, get_documents, get_personal_info

logger = logging.getLogger(__name__)


class RenderableImage(WireModel):
    path: str
    caption: Optional[str] = None


class RenderableProject(WireModel):
    id: str
    name: str
    project_type: Optional[str] = None
    location: Optional[str] = None
    year: Optional[int] = None
    year_start: Optional[int] = None
    year_completion: Optional[int] = None
    client_name: Optional[str] = None
    practice_name: Optional[str] = None
    project_value: Optional[float] = None
    project_size: Optional[float] = None
    role: Optional[str] = None
    team_size: Optional[int] = None
    responsibilities: List[str] = Field(default_factory=list)
    riba_stages: List[str] = Field(default_factory=list)
    brief_description: Optional[str] = None
    detailed_description: Optional[str] = None
    design_approach: Optional[str] = None
    key_challenges: Optional[str] = None
    solutions_provided: Optional[str] = None
    sustainability_features: Optional[str] = None
    software_used: List[str] = Field(default_factory=list)
    skills_demonstrated: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_academic: bool = False
    is_competition: bool = False
    featured_priority: Optional[int] = None
    hero: Optional[RenderableImage] = None
    images: List[RenderableImage] = Field(default_factory=list)


class RenderablePersonalInfo(WireModel):
    name: Optional[str] = None
    professional_title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None
    professional_summary: Optional[str] = None


class RenderableExperience(WireModel):
    company_name: str
    position_title: str
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: bool = False
    description: Optional[str] = None
    key_achievements: List[str] = Field(default_factory=list)


class RenderableEducation(WireModel):
    institution_name: str
    degree_type: str
    field_of_study: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    grade: Optional[str] = None
    relevant_coursework: List[str] = Field(default_factory=list)


class RenderableSkill(WireModel):
    category: str
    skill_name: str
    proficiency_level: str
    years_experience: Optional[float] = None


class RenderableCVData(WireModel):
    personal_info: Optional[RenderablePersonalInfo] = None
    experiences: List[RenderableExperience] = Field(default_factory=list)
    education: List[RenderableEducation] = Field(default_factory=list)
    skills: List[RenderableSkill] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.personal_info or self.experiences or self.education or self.skills)


class RenderableCV(WireModel):
    created_at: str
    personal_header: Optional[str] = None
    color_scheme: ColorScheme
    margins: ResolvedMargins
    cv: RenderableCVData

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class RenderablePortfolio(WireModel):
    id: str
    portfolio_name: str
    portfolio_type: Optional[str] = None
    created_at: str
    include_cv: bool = Field(False, alias="includeCV")
    personal_header: Optional[str] = None
    margins: ResolvedMargins
    color_scheme: ColorScheme
    settings: ResolvedSizes
    projects: List[RenderableProject] = Field(default_factory=list)
    cv: Optional[RenderableCVData] = None

    def to_wire(self) -> dict:
        data = self.model_dump(by_alias=True, mode="json")
        if self.cv is None:
            data.pop("cv")
        return data


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _strings(values) -> List[str]:
    return [str(v) for v in values] if isinstance(values, list) else []


def personal_header(info: Optional[dict]) -> Optional[str]:
    if not info:
        return None
    parts = [info.get("name"), info.get("professional_title")]
    return " — ".join(p for p in parts if p) or None


# CV

def _cv_personal(info: Optional[dict]) -> Optional[RenderablePersonalInfo]:
    if not info:
        return None
    personal = RenderablePersonalInfo(**{k: info.get(k) for k in RenderablePersonalInfo.model_fields})
    # A saved but blank profile is no profile.
    if all(v is None for v in personal.model_dump().values()):
        return None
    return personal


def _cv_experience(doc: dict) -> RenderableExperience:
    current = bool(doc.get("is_current"))
    return RenderableExperience(
        company_name=doc.get("company_name") or "",
        position_title=doc.get("position_title") or "",
        location=doc.get("location"),
        start_date=_iso(doc.get("start_date")),
        end_date=None if current else _iso(doc.get("end_date")),
        is_current=current,
        description=doc.get("description"),
        key_achievements=_strings(doc.get("key_achievements")),
    )


def _cv_education(doc: dict) -> RenderableEducation:
    return RenderableEducation(
        institution_name=doc.get("institution_name") or "",
        degree_type=doc.get("degree_type") or "",
        field_of_study=doc.get("field_of_study"),
        location=doc.get("location"),
        start_date=_iso(doc.get("start_date")),
        end_date=_iso(doc.get("end_date")),
        grade=doc.get("grade"),
        relevant_coursework=_strings(doc.get("relevant_coursework")),
    )


def _cv_skill(doc: dict) -> RenderableSkill:
    return RenderableSkill(
        category=doc.get("category") or "OTHER",
        skill_name=doc.get("skill_name") or "",
        proficiency_level=doc.get("proficiency_level") or "BASIC",
        years_experience=doc.get("years_experience"),
    )


def load_cv_data(info: Optional[dict] = None) -> RenderableCVData:
    by_order = [("display_order", 1), ("_id", 1)]
    return RenderableCVData(
        personal_info=_cv_personal(info),
        experiences=[_cv_experience(d) for d in get_documents("cvexperience", sort=by_order)],
        education=[_cv_education(d) for d in get_documents("cveducation", sort=by_order)],
        skills=[_cv_skill(d) for d in get_documents("cvskill", sort=[("category", 1)] + by_order)],
    )


def build_cv(override: Optional[dict] = None) -> RenderableCV:
    """Project the current CV records; reads the store on every call."""
    info = get_personal_info()
    appearance = resolve_appearance(override, get_app_settings())
    return RenderableCV(
        created_at=datetime.now(timezone.utc).isoformat(),
        personal_header=personal_header(info),
        color_scheme=appearance.color_scheme,
        margins=appearance.margins,
        cv=load_cv_data(info),
    )


# Portfolio

def _display_key(asset: dict):
    order = asset.get("display_order")
    return (order is None, order or 0)


def select_assets(assets: List[dict], included_ids: Optional[List[str]] = None,
                  hero_override: Optional[str] = None) -> Tuple[Optional[dict], List[dict]]:
    """Pick the hero and the remaining gallery assets for one portfolio project.

    Hero precedence: link override (only when selected), the project's
    hero-flagged asset, then the first selected asset.
    """
    with_file = [a for a in sorted(assets or [], key=_display_key) if a.get("file_name")]
    if included_ids:
        wanted = set(included_ids)
        selected = [a for a in with_file if a.get("id") in wanted]
    else:
        selected = with_file

    hero = None
    if hero_override:
        hero = next((a for a in selected if a.get("id") == hero_override), None)
    if hero is None:
        hero = next((a for a in with_file if a.get("is_hero_image")), None)
    if hero is None and selected:
        hero = selected[0]

    gallery = [a for a in selected if hero is None or a.get("id") != hero.get("id")]
    return hero, gallery


def _image(asset: dict) -> RenderableImage:
    return RenderableImage(path=asset_web_path(asset), caption=asset.get("caption"))


def project_to_renderable(project: dict, included_ids: Optional[List[str]] = None,
                          hero_override: Optional[str] = None) -> RenderableProject:
    hero, gallery = select_assets(project.get("assets", []), included_ids, hero_override)
    return RenderableProject(
        id=str(project.get("_id", project.get("id", ""))),
        name=project.get("project_name") or "",
        project_type=project.get("project_type"),
        location=project.get("location"),
        year=project.get("year_completion") or project.get("year_start"),
        year_start=project.get("year_start"),
        year_completion=project.get("year_completion"),
        client_name=project.get("client_name"),
        practice_name=project.get("practice_name"),
        project_value=project.get("project_value"),
        project_size=project.get("project_size"),
        role=project.get("role"),
        team_size=project.get("team_size"),
        responsibilities=_strings(project.get("responsibilities")),
        riba_stages=_strings(project.get("riba_stages")),
        brief_description=project.get("brief_description"),
        detailed_description=project.get("detailed_description"),
        design_approach=project.get("design_approach"),
        key_challenges=project.get("key_challenges"),
        solutions_provided=project.get("solutions_provided"),
        sustainability_features=project.get("sustainability_features"),
        software_used=_strings(project.get("software_used")),
        skills_demonstrated=_strings(project.get("skills_demonstrated")),
        tags=_strings(project.get("tags")),
        is_academic=bool(project.get("is_academic")),
        is_competition=bool(project.get("is_competition")),
        featured_priority=project.get("featured_priority"),
        hero=_image(hero) if hero else None,
        images=[_image(a) for a in gallery],
    )


def build_portfolio(portfolio_id: str) -> Optional[RenderablePortfolio]:
    """Project a stored portfolio, or return None when it does not exist."""
    if not ObjectId.is_valid(portfolio_id):
        return None
    portfolio = get_collection("portfolio").find_one({"_id": ObjectId(portfolio_id)})
    if not portfolio:
        return None

    links = sorted(portfolio.get("projects") or [], key=lambda link: link.get("display_order", 0))
    oids = [ObjectId(link["project_id"]) for link in links if ObjectId.is_valid(link.get("project_id", ""))]
    by_id = {str(p["_id"]): p for p in get_documents("project", {"_id": {"$in": oids}})}

    projects = []
    for link in links:
        project = by_id.get(link.get("project_id"))
        if project is None:
            logger.warning("Portfolio %s links missing project %s; skipping", portfolio_id, link.get("project_id"))
            continue
        projects.append(project_to_renderable(project, link.get("included_assets"), link.get("hero_asset_id")))

    info = get_personal_info()
    appearance = resolve_appearance(portfolio.get("settings"), get_app_settings())
    include_cv = bool(portfolio.get("cv_included"))
    created = portfolio.get("created_at")
    return RenderablePortfolio(
        id=str(portfolio["_id"]),
        portfolio_name=portfolio.get("portfolio_name") or "",
        portfolio_type=portfolio.get("portfolio_type"),
        created_at=_iso(created) or datetime.now(timezone.utc).isoformat(),
        include_cv=include_cv,
        personal_header=personal_header(info),
        margins=appearance.margins,
        color_scheme=appearance.color_scheme,
        settings=appearance.sizes,
        projects=projects,
        cv=load_cv_data(info) if include_cv else None,
    )
