import logging
import re
from contextlib import asynccontextmanager
from math import ceil
from typing import Dict, List, Literal, Optional

from bson import ObjectId
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

import database
import printer
from asset_paths import resolve_asset_paths
from config import configure_logging, get_port, get_uploads_dir
from database import (
    PROFILE_ID,
    SETTINGS_ID,
    as_serializable,
    coll_name,
    create_item,
    delete_item,
    get_collection,
    get_item,
    list_items,
    now,
    to_oid,
    update_item,
)
from errors import ConflictError, register_error_handlers
from layout import paginate_cv, paginate_portfolio
from print_views import render_document
from renderable import build_cv, build_portfolio
from schemas import (
    AppSettings,
    Asset,
    AssetReorder,
    AssetUpdate,
    CVEducation,
    CVEducationUpdate,
    CVExperience,
    CVExperienceUpdate,
    CVSkill,
    CVSkillUpdate,
    PersonalInfo,
    Portfolio,
    PortfolioProjectAdd,
    PortfolioTemplate,
    PortfolioUpdate,
    Project,
    ProjectType,
    ProjectUpdate,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    get_uploads_dir().mkdir(parents=True, exist_ok=True)
    database.init_singletons()
    yield


app = FastAPI(title="Architecture Portfolio Builder API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)
app.mount("/uploads", StaticFiles(directory=str(get_uploads_dir()), check_dir=False), name="uploads")


# Utilities

def ok(data):
    return {"success": True, "data": data}


def serialize_asset(asset: dict, project: Optional[dict] = None) -> dict:
    out = as_serializable(asset)
    paths = resolve_asset_paths(asset.get("file_name"), asset.get("file_path"), asset.get("mime_type"))
    out["url"] = paths.url
    out["thumbnail_url"] = paths.thumbnail_url
    if project is not None:
        out["project_id"] = str(project["_id"])
        out["project_name"] = project.get("project_name")
        out["project_type"] = project.get("project_type")
    return out


def sorted_assets(project: dict) -> List[dict]:
    return sorted(project.get("assets") or [], key=lambda a: a.get("display_order") or 0)


def serialize_project(project: dict) -> dict:
    out = as_serializable(project)
    out["assets"] = [serialize_asset(a) for a in sorted_assets(project)]
    return out


def find_asset(asset_id: str):
    project = get_collection("project").find_one({"assets.id": asset_id})
    if not project:
        raise HTTPException(status_code=404, detail="Asset not found")
    asset = next(a for a in project["assets"] if a.get("id") == asset_id)
    return project, asset


def with_hero(assets: List[dict], hero_id: Optional[str]) -> List[dict]:
    """Exactly the asset hero_id keeps the hero flag (none when hero_id is None)."""
    return [{**a, "is_hero_image": a.get("id") == hero_id} for a in assets]


def rewrite_assets(project: dict, assets: List[dict]) -> None:
    """Replace a project's asset list only if nobody changed it since it was read."""
    res = get_collection("project").update_one(
        {"_id": project["_id"], "assets": project.get("assets", [])},
        {"$set": {"assets": assets, "updated_at": now()}},
    )
    if res.matched_count == 0:
        raise ConflictError("Project assets changed concurrently; reload and retry")


@app.get("/")
def root():
    return {"message": "Architecture Portfolio Builder API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "connection_status": "Not Connected",
        "collections": []
    }
    db = database.db
    if db is not None:
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
        try:
            response["collections"] = db.list_collection_names()[:20]
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    return response


@app.get("/api/stats")
def get_stats():
    projects = list(get_collection("project").find({}, {"assets": 1}))
    return ok({
        "total_projects": len(projects),
        "total_assets": sum(len(p.get("assets") or []) for p in projects),
        "total_portfolios": get_collection("portfolio").count_documents({}),
        "total_experiences": get_collection("cvexperience").count_documents({}),
        "total_education": get_collection("cveducation").count_documents({}),
        "total_skills": get_collection("cvskill").count_documents({}),
    })


# Projects

PROJECT_SORT_FIELDS = ("featured_priority", "project_name", "year_start", "year_completion",
                       "project_value", "created_at", "updated_at")


@app.get("/api/projects")
def get_projects(
    project_type: Optional[ProjectType] = None,
    is_academic: Optional[bool] = None,
    is_competition: Optional[bool] = None,
    year_start: Optional[int] = Query(None, description="Started in or after this year"),
    year_end: Optional[int] = Query(None, description="Completed in or before this year"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = "featured_priority",
    sort_order: Literal["asc", "desc"] = "asc",
):
    if sort_by not in PROJECT_SORT_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {sort_by}")
    filt: Dict = {}
    if project_type:
        filt["project_type"] = project_type.value
    if is_academic is not None:
        filt["is_academic"] = is_academic
    if is_competition is not None:
        filt["is_competition"] = is_competition
    if year_start is not None:
        filt["year_start"] = {"$gte": year_start}
    if year_end is not None:
        filt["year_completion"] = {"$lte": year_end}
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        filt["$or"] = [{"project_name": pattern}, {"location": pattern}, {"brief_description": pattern}]

    collection = get_collection("project")
    total = collection.count_documents(filt)
    direction = 1 if sort_order == "asc" else -1
    # _id breaks ties so pages never overlap.
    cursor = collection.find(filt).sort([(sort_by, direction), ("_id", direction)])
    docs = list(cursor.skip((page - 1) * limit).limit(limit))
    return {
        "success": True,
        "data": [serialize_project(d) for d in docs],
        "pagination": {"page": page, "limit": limit, "total": total, "total_pages": ceil(total / limit)},
    }


@app.post("/api/projects", status_code=201)
def create_project(project: Project):
    data = project.model_dump()
    data["assets"] = []
    new_id = database.create_document(coll_name(Project), data)
    return ok(serialize_project(get_item(Project, new_id)))


@app.get("/api/projects/{id}")
def get_project(id: str):
    return ok(serialize_project(get_item(Project, id, "Project not found")))


@app.put("/api/projects/{id}")
def update_project(id: str, updates: ProjectUpdate):
    update_item(Project, id, updates.model_dump(exclude_unset=True))
    return ok(serialize_project(get_item(Project, id, "Project not found")))


@app.delete("/api/projects/{id}")
def remove_project(id: str):
    # Assets are embedded, so they go with the project.
    return ok(delete_item(Project, id))


@app.get("/api/projects/{id}/assets")
def get_project_assets(id: str):
    project = get_item(Project, id, "Project not found")
    return ok([serialize_asset(a) for a in sorted_assets(project)])


# Assets

@app.post("/api/projects/{id}/assets", status_code=201)
def add_asset(id: str, asset: Asset):
    project = get_item(Project, id, "Project not found")
    current = project.get("assets") or []
    record = asset.model_dump()
    record["id"] = str(ObjectId())
    if record.get("display_order") is None:
        record["display_order"] = max((a.get("display_order") or 0 for a in current), default=-1) + 1
    assets = current + [record]
    if record["is_hero_image"]:
        assets = with_hero(assets, record["id"])
    rewrite_assets(project, assets)
    return ok(serialize_asset(record, project))


@app.get("/api/assets/{id}")
def get_asset(id: str):
    project, asset = find_asset(id)
    return ok(serialize_asset(asset, project))


@app.put("/api/assets/{id}")
def update_asset(id: str, updates: AssetUpdate):
    project, _ = find_asset(id)
    changes = updates.model_dump(exclude_unset=True)
    hero = changes.pop("is_hero_image", None)
    assets = [{**a, **changes} if a.get("id") == id else a for a in project["assets"]]
    if hero is True:
        assets = with_hero(assets, id)
    elif hero is False:
        assets = [{**a, "is_hero_image": False} if a.get("id") == id else a for a in assets]
    rewrite_assets(project, assets)
    updated = next(a for a in assets if a.get("id") == id)
    return ok(serialize_asset(updated, project))


@app.delete("/api/assets/{id}")
def remove_asset(id: str):
    project, _ = find_asset(id)
    rewrite_assets(project, [a for a in project["assets"] if a.get("id") != id])
    return ok({"deleted": True})


@app.post("/api/assets/reorder")
def reorder_assets(payload: AssetReorder):
    orders = {item.id: item.display_order for item in payload.assets}
    projects = list(get_collection("project").find({"assets.id": {"$in": list(orders)}}))
    found = {a.get("id") for p in projects for a in p.get("assets", [])}
    missing = [i for i in orders if i not in found]
    if missing:
        raise HTTPException(status_code=404, detail=f"Asset not found: {', '.join(missing)}")
    for project in projects:
        assets = [
            {**a, "display_order": orders[a["id"]]} if a.get("id") in orders else a
            for a in project["assets"]
        ]
        rewrite_assets(project, assets)
    return ok({"reordered": len(orders)})


@app.post("/api/assets/{id}/set-hero")
def set_hero(id: str):
    project, _ = find_asset(id)
    assets = with_hero(project["assets"], id)
    rewrite_assets(project, assets)
    updated = next(a for a in assets if a.get("id") == id)
    return ok(serialize_asset(updated, project))


# CV: personal info

@app.get("/api/cv/personal-info")
def get_personal_info():
    return ok(as_serializable(database.get_personal_info()))


@app.put("/api/cv/personal-info")
def put_personal_info(info: PersonalInfo):
    collection = get_collection(coll_name(PersonalInfo))
    collection.update_one(
        {"_id": PROFILE_ID},
        {"$set": {**info.model_dump(exclude_unset=True), "updated_at": now()},
         "$setOnInsert": {"created_at": now()}},
        upsert=True,
    )
    return ok(as_serializable(collection.find_one({"_id": PROFILE_ID})))


# CV: experience

CV_ORDER = [("display_order", 1), ("_id", 1)]


@app.get("/api/cv/experience")
def get_experience():
    return ok(list_items(CVExperience, sort=CV_ORDER))


@app.post("/api/cv/experience", status_code=201)
def create_experience(entry: CVExperience):
    return ok(create_item(entry))


@app.put("/api/cv/experience/{id}")
def update_experience(id: str, updates: CVExperienceUpdate):
    return ok(update_item(CVExperience, id, updates.model_dump(exclude_unset=True)))


@app.delete("/api/cv/experience/{id}")
def remove_experience(id: str):
    return ok(delete_item(CVExperience, id))


# CV: education

@app.get("/api/cv/education")
def get_education():
    return ok(list_items(CVEducation, sort=CV_ORDER))


@app.post("/api/cv/education", status_code=201)
def create_education(entry: CVEducation):
    return ok(create_item(entry))


@app.put("/api/cv/education/{id}")
def update_education(id: str, updates: CVEducationUpdate):
    return ok(update_item(CVEducation, id, updates.model_dump(exclude_unset=True)))


@app.delete("/api/cv/education/{id}")
def remove_education(id: str):
    return ok(delete_item(CVEducation, id))


# CV: skills

@app.get("/api/cv/skills")
def get_skills():
    return ok(list_items(CVSkill, sort=[("category", 1)] + CV_ORDER))


@app.post("/api/cv/skills", status_code=201)
def create_skill(skill: CVSkill):
    return ok(create_item(skill))


@app.put("/api/cv/skills/{id}")
def update_skill(id: str, updates: CVSkillUpdate):
    return ok(update_item(CVSkill, id, updates.model_dump(exclude_unset=True)))


@app.delete("/api/cv/skills/{id}")
def remove_skill(id: str):
    return ok(delete_item(CVSkill, id))


# CV: documents

@app.get("/api/cv/all")
def get_cv_all():
    return ok({
        "personal_info": as_serializable(database.get_personal_info()),
        "experiences": list_items(CVExperience, sort=CV_ORDER),
        "education": list_items(CVEducation, sort=CV_ORDER),
        "skills": list_items(CVSkill, sort=[("category", 1)] + CV_ORDER),
    })


@app.get("/api/cv/renderable")
def get_cv_renderable():
    return ok(build_cv().to_wire())


@app.get("/api/cv/layout")
def get_cv_layout():
    return ok(paginate_cv(build_cv()).to_wire())


@app.post("/api/cv/generate", status_code=201)
def generate_cv():
    return ok(printer.generate_cv_pdf())


# Portfolios

def renderable_or_404(id: str):
    document = build_portfolio(id)
    if document is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    return document


def check_project_ids(ids: List[str]) -> None:
    invalid = [i for i in ids if not ObjectId.is_valid(i)]
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid project ID: {', '.join(invalid)}")
    known = {str(p["_id"]) for p in get_collection("project").find(
        {"_id": {"$in": [ObjectId(i) for i in ids]}}, {"_id": 1})}
    unknown = [i for i in ids if i not in known]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown project: {', '.join(unknown)}")


@app.get("/api/portfolios")
def get_portfolios():
    return ok(list_items(Portfolio, sort=[("created_at", -1)]))


@app.post("/api/portfolios", status_code=201)
def create_portfolio(portfolio: Portfolio):
    if portfolio.template_id:
        get_item(PortfolioTemplate, portfolio.template_id, "Template not found")
    check_project_ids([link.project_id for link in portfolio.projects])
    new_id = database.create_document(coll_name(Portfolio), portfolio.to_document())
    return ok(as_serializable(get_item(Portfolio, new_id)))


@app.get("/api/portfolios/{id}")
def get_portfolio(id: str):
    return ok(as_serializable(get_item(Portfolio, id, "Portfolio not found")))


@app.put("/api/portfolios/{id}")
def update_portfolio(id: str, updates: PortfolioUpdate):
    get_item(Portfolio, id, "Portfolio not found")
    if updates.template_id:
        get_item(PortfolioTemplate, updates.template_id, "Template not found")
    if updates.projects is not None:
        check_project_ids([link.project_id for link in updates.projects])
    return ok(update_item(Portfolio, id, updates.to_changes()))


@app.delete("/api/portfolios/{id}")
def remove_portfolio(id: str):
    return ok(delete_item(Portfolio, id))


@app.post("/api/portfolios/{id}/duplicate", status_code=201)
def duplicate_portfolio(id: str):
    source = get_item(Portfolio, id, "Portfolio not found")
    copy = {k: v for k, v in source.items() if k not in ("_id", "created_at", "updated_at")}
    copy["portfolio_name"] = f"{source.get('portfolio_name', '')} (Copy)"
    # The generated PDF belongs to the source portfolio.
    copy.update(file_path=None, file_size=None, total_pages=None)
    new_id = database.create_document(coll_name(Portfolio), copy)
    return ok(as_serializable(get_item(Portfolio, new_id)))


@app.post("/api/portfolios/{id}/add-project", status_code=201)
def add_portfolio_project(id: str, link: PortfolioProjectAdd):
    portfolio = get_item(Portfolio, id, "Portfolio not found")
    check_project_ids([link.project_id])
    record = link.model_dump()
    if record["display_order"] is None:
        record["display_order"] = len(portfolio.get("projects") or [])
    res = get_collection("portfolio").update_one(
        {"_id": portfolio["_id"], "projects.project_id": {"$ne": link.project_id}},
        {"$push": {"projects": record}, "$set": {"updated_at": now()}},
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=400, detail="Project is already in this portfolio")
    return ok(as_serializable(get_item(Portfolio, id, "Portfolio not found")))


@app.delete("/api/portfolios/{id}/remove-project/{project_id}")
def remove_portfolio_project(id: str, project_id: str):
    portfolio = get_item(Portfolio, id, "Portfolio not found")
    res = get_collection("portfolio").update_one(
        {"_id": portfolio["_id"], "projects.project_id": project_id},
        {"$pull": {"projects": {"project_id": project_id}}, "$set": {"updated_at": now()}},
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Project is not in this portfolio")
    return ok(as_serializable(get_item(Portfolio, id, "Portfolio not found")))


@app.get("/api/portfolios/{id}/renderable")
def get_portfolio_renderable(id: str):
    return ok(renderable_or_404(id).to_wire())


@app.get("/api/portfolios/{id}/layout")
def get_portfolio_layout(id: str):
    layout = paginate_portfolio(renderable_or_404(id))
    if not layout.within_guideline:
        logger.warning("Sample portfolio %s exceeds the page guideline (%d pages)", id, layout.page_count)
    return ok(layout.to_wire())


@app.post("/api/portfolios/{id}/generate", status_code=201)
def generate_portfolio(id: str):
    to_oid(id)
    return ok(printer.generate_portfolio_pdf(id))


# Templates

@app.get("/api/templates")
def get_templates():
    return ok(list_items(PortfolioTemplate, sort=[("template_name", 1)]))


@app.post("/api/templates", status_code=201)
def create_template(template: PortfolioTemplate):
    if template.is_default:
        get_collection(coll_name(PortfolioTemplate)).update_many(
            {"is_default": True}, {"$set": {"is_default": False, "updated_at": now()}})
    return ok(create_item(template))


# Settings

@app.get("/api/settings")
def get_settings():
    doc = database.get_app_settings()
    if doc is None:
        # Reads never write; PUT or the next startup creates the document.
        doc = {"_id": SETTINGS_ID, **database.default_app_settings()}
    return ok(as_serializable(doc))


@app.put("/api/settings")
def put_settings(settings: AppSettings):
    changes = settings.model_dump(exclude_unset=True, exclude={"margins"})
    if settings.margins is not None:
        # Per-side update so omitted sides keep their stored value.
        for side, value in settings.margins.model_dump(exclude_unset=True).items():
            changes[f"margins.{side}"] = value
    collection = get_collection("appsettings")
    collection.update_one(
        {"_id": SETTINGS_ID},
        {"$set": {**changes, "updated_at": now()}, "$setOnInsert": {"created_at": now()}},
        upsert=True,
    )
    return ok(as_serializable(collection.find_one({"_id": SETTINGS_ID})))


# Print routes: loaded by the headless browser (unit=mm) and the preview iframe (unit=px)

@app.get("/print/portfolio/{id}", response_class=HTMLResponse)
def print_portfolio(id: str, unit: str = Query("mm", pattern="^(mm|px)$")):
    return HTMLResponse(render_document(paginate_portfolio(renderable_or_404(id)), unit))


@app.get("/print/cv", response_class=HTMLResponse)
def print_cv(unit: str = Query("mm", pattern="^(mm|px)$")):
    return HTMLResponse(render_document(paginate_cv(build_cv()), unit))


if __name__ == "__main__":
    import uvicorn
    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=get_port())
