"""
Page layout for portfolio and CV documents.

Turns a renderable document into fixed-size A4 page descriptors. All geometry
is in millimeters; conversion to pixels happens only when drawing the
on-screen preview (see print_views), never for the printed PDF.

The JSON layout endpoints and the HTML print routes both call
paginate_portfolio / paginate_cv, so the preview and the exported PDF always
agree on page count and page content.
"""

from datetime import datetime
from typing import List, NamedTuple, Optional

from pydantic import Field

from appearance import ColorScheme, ResolvedMargins, ResolvedSizes, WireModel
from renderable import (
    RenderableCV,
    RenderableCVData,
    RenderableImage,
    RenderablePortfolio,
    RenderableProject,
)

PAGE_WIDTH_MM = 210.0
PAGE_HEIGHT_MM = 297.0
MM_TO_PX = 3.7795

STRIP_GAP_MM = 1.0
COLUMN_GAP_MM = 3.0
BLOCK_GAP_MM = 2.0
FOOTER_HEIGHT_MM = 80.0
TECH_MIN_HEIGHT_MM = 60.0

SAMPLE_PAGE_GUIDELINE = 12
EMPTY = "—"


def mm_to_px(mm: float) -> float:
    return mm * MM_TO_PX


class Box(WireModel):
    x: float
    y: float
    width: float
    height: float


class MetaField(WireModel):
    label: str
    value: str


class Entry(WireModel):
    heading: str
    meta: Optional[str] = None
    text: Optional[str] = None


class Section(WireModel):
    title: str
    text: Optional[str] = None
    items: List[str] = Field(default_factory=list)
    entries: List[Entry] = Field(default_factory=list)


class Block(WireModel):
    kind: str
    box: Box
    image: Optional[RenderableImage] = None
    fit: Optional[str] = None
    title: Optional[str] = None
    text: Optional[str] = None
    fields: List[MetaField] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)


class Page(WireModel):
    kind: str
    number: int = 0
    label: str = ""
    project_id: Optional[str] = None
    width_mm: float = PAGE_WIDTH_MM
    height_mm: float = PAGE_HEIGHT_MM
    margins: ResolvedMargins
    blocks: List[Block] = Field(default_factory=list)


class DocumentLayout(WireModel):
    title: str
    color_scheme: ColorScheme
    px_per_mm: float = MM_TO_PX
    page_count: int = 0
    within_guideline: bool = True
    pages: List[Page] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ContentBox(NamedTuple):
    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height


def content_box(margins: ResolvedMargins) -> ContentBox:
    width = max(0.0, PAGE_WIDTH_MM - margins.left - margins.right)
    height = max(0.0, PAGE_HEIGHT_MM - margins.top - margins.bottom)
    return ContentBox(margins.left, margins.top, width, height)


# Spread decision

class SpreadInputs(NamedTuple):
    image_count: int
    has_detailed_text: bool
    has_rich_data: bool


def spread_inputs(project: RenderableProject) -> SpreadInputs:
    image_count = len(project.images) + (1 if project.hero else 0)
    has_detailed_text = bool(
        project.detailed_description or project.design_approach or project.sustainability_features
    )
    has_rich_data = bool(
        project.project_value
        or len(project.responsibilities) > 2
        or len(project.riba_stages) >= 1
    )
    return SpreadInputs(image_count, has_detailed_text, has_rich_data)


def use_two_page_spread(image_count: int, has_detailed_text: bool, has_rich_data: bool) -> bool:
    # Page-count estimates shown before generation depend on this exact rule.
    return image_count > 3 or (has_detailed_text and has_rich_data)


def should_use_two_page_spread(project: RenderableProject) -> bool:
    return use_two_page_spread(*spread_inputs(project))


def project_page_count(project: RenderableProject) -> int:
    return 2 if should_use_two_page_spread(project) else 1


def estimate_page_count(document: RenderablePortfolio) -> int:
    """Pages the portfolio will print to: cover, project pages, optional CV page."""
    count = 1 + sum(project_page_count(p) for p in document.projects)
    if document.include_cv and document.cv is not None:
        count += 1
    return count


# Text formatting

def format_value(value: Optional[float]) -> Optional[str]:
    if not value:
        return None
    return f"£{value / 1_000_000:.1f}M"


def format_area(size: Optional[float]) -> Optional[str]:
    if not size:
        return None
    if float(size).is_integer():
        return f"{int(size):,}m²"
    return f"{size:,.1f}m²"


def year_range(project: RenderableProject) -> str:
    if project.year_start and project.year_completion:
        return f"{project.year_start}-{project.year_completion}"
    year = project.year_completion or project.year_start
    return str(year) if year else EMPTY


def _year_of(iso: Optional[str]) -> Optional[str]:
    if not iso:
        return None
    try:
        return str(datetime.fromisoformat(iso.replace("Z", "+00:00")).year)
    except ValueError:
        return iso[:4]


def _join(parts, sep=" · ") -> str:
    return sep.join(str(p) for p in parts if p)


# Pages

def cover_page(title: str, subtitle: str, created_at: str, margins: ResolvedMargins) -> Page:
    content = content_box(margins)
    title_height = 40.0
    return Page(kind="cover", margins=margins, blocks=[
        Block(
            kind="cover-title",
            box=Box(x=content.x, y=content.y + (content.height - title_height) / 2,
                    width=content.width, height=title_height),
            title=title,
            text=subtitle,
        ),
        Block(kind="accent-bar", box=Box(x=0, y=PAGE_HEIGHT_MM - 11, width=PAGE_WIDTH_MM, height=1)),
        Block(kind="cover-year", box=Box(x=0, y=PAGE_HEIGHT_MM - 8, width=PAGE_WIDTH_MM, height=5),
              text=_year_of(created_at)),
    ])


def summary_page(project: RenderableProject, margins: ResolvedMargins, sizes: ResolvedSizes) -> Page:
    """Hero image across the top with the title block overlaid at the bottom."""
    content = content_box(margins)
    blocks = []
    if project.hero and project.hero.path:
        hero_height = min(sizes.hero_height_mm, PAGE_HEIGHT_MM)
        blocks.append(Block(kind="image", fit="cover", image=project.hero,
                            box=Box(x=0, y=0, width=PAGE_WIDTH_MM, height=hero_height)))

    top = max(content.y, content.bottom - FOOTER_HEIGHT_MM)
    footer_height = content.bottom - top
    blocks.extend([
        Block(kind="title", box=Box(x=content.x, y=top, width=content.width, height=10), title=project.name),
        Block(kind="subtitle", box=Box(x=content.x, y=top + 10, width=content.width, height=6),
              text=_join([project.practice_name, project.project_type, project.location, project.year])),
        Block(kind="meta-grid", box=Box(x=content.x, y=top + 16, width=content.width, height=12), fields=[
            MetaField(label="Year", value=year_range(project)),
            MetaField(label="Role", value=project.role or EMPTY),
            MetaField(label="Stages", value=", ".join(project.riba_stages) or EMPTY),
        ]),
        Block(kind="text", box=Box(x=content.x, y=top + 30, width=content.width,
                                   height=max(0.0, footer_height - 30)),
              text=project.brief_description or project.detailed_description or ""),
    ])
    return Page(kind="summary", project_id=project.id, margins=margins, blocks=blocks)


def _project_data(project: RenderableProject) -> List[str]:
    items = [format_value(project.project_value), format_area(project.project_size)]
    if project.team_size:
        items.append(f"Team of {project.team_size}")
    return [i for i in items if i]


def detail_page(project: RenderableProject, margins: ResolvedMargins, sizes: ResolvedSizes) -> Page:
    """Image strip, two-column body and an optional technical image at the bottom."""
    content = content_box(margins)
    blocks = []
    cursor = content.y

    strip = project.images[:2]
    if strip:
        strip_height = min(sizes.strip_height_mm, content.height)
        if len(strip) == 1:
            widths = [content.width]
        else:
            share = (content.width - STRIP_GAP_MM) / 3
            widths = [share * 2, share]
        x = content.x
        for image, width in zip(strip, widths):
            blocks.append(Block(kind="image", fit="cover", image=image,
                                box=Box(x=x, y=cursor, width=width, height=strip_height)))
            x += width + STRIP_GAP_MM
        cursor += strip_height + BLOCK_GAP_MM

    body_bottom = content.bottom
    if len(project.images) > 2:
        available = max(0.0, content.bottom - cursor)
        tech_height = max(TECH_MIN_HEIGHT_MM, min(sizes.tech_height_mm, available))
        tech_y = content.bottom - tech_height
        blocks.append(Block(kind="image", fit="contain", image=project.images[2],
                            box=Box(x=content.x, y=tech_y, width=content.width, height=tech_height)))
        body_bottom = tech_y - BLOCK_GAP_MM

    left, right = [], []
    if project.responsibilities:
        left.append(Section(title="Responsibilities", text=". ".join(project.responsibilities)))
    if project.design_approach:
        left.append(Section(title="Design Approach", text=project.design_approach))
    data = _project_data(project)
    if data:
        right.append(Section(title="Project Data", items=data))
    if project.software_used:
        right.append(Section(title="Software", items=list(project.software_used)))
    if project.sustainability_features:
        right.append(Section(title="Sustainability", text=project.sustainability_features))

    body_height = max(0.0, body_bottom - cursor)
    column_unit = (content.width - COLUMN_GAP_MM) / 5
    left_width, right_width = column_unit * 3, column_unit * 2
    blocks.append(Block(kind="column", sections=left,
                        box=Box(x=content.x, y=cursor, width=left_width, height=body_height)))
    blocks.append(Block(kind="column", sections=right,
                        box=Box(x=content.x + left_width + COLUMN_GAP_MM, y=cursor,
                                width=right_width, height=body_height)))
    return Page(kind="detail", project_id=project.id, margins=margins, blocks=blocks)


def project_pages(project: RenderableProject, margins: ResolvedMargins, sizes: ResolvedSizes) -> List[Page]:
    detail = detail_page(project, margins, sizes)
    if should_use_two_page_spread(project):
        return [summary_page(project, margins, sizes), detail]
    # Simple projects print the detail page only; the summary content is dropped.
    return [detail]


def _date_span(start: Optional[str], end: Optional[str], open_label: str) -> str:
    return f"{_year_of(start) or ''}-{_year_of(end) or open_label}"


def cv_page(cv: RenderableCVData, margins: ResolvedMargins) -> Page:
    """Single CV page; content that does not fit is clipped by the page, not split."""
    content = content_box(margins)
    info = cv.personal_info
    sections = []
    if info:
        sections.append(Section(
            title="Curriculum Vitae",
            entries=[Entry(
                heading=info.name or "",
                meta=_join([info.professional_title, info.location]),
                text=_join([info.email, info.phone, info.website_url, info.linkedin_url]),
            )],
            text=info.professional_summary,
        ))
    else:
        sections.append(Section(title="Curriculum Vitae"))
    if cv.experiences:
        sections.append(Section(title="Experience", entries=[
            Entry(
                heading=f"{e.position_title} — {e.company_name}",
                meta=_join([_date_span(e.start_date, e.end_date, "Present"), e.location]),
                text=e.description,
            )
            for e in cv.experiences
        ]))
    if cv.education:
        sections.append(Section(title="Education", entries=[
            Entry(
                heading=f"{e.degree_type}, {e.institution_name}",
                meta=_join([_date_span(e.start_date, e.end_date, ""), e.location]),
                text=e.grade,
            )
            for e in cv.education
        ]))
    if cv.skills:
        sections.append(Section(title="Skills", text=" · ".join(s.skill_name for s in cv.skills)))
    return Page(kind="cv", margins=margins, blocks=[
        Block(kind="cv", sections=sections,
              box=Box(x=content.x, y=content.y, width=content.width, height=content.height)),
    ])


def number_pages(pages: List[Page]) -> List[Page]:
    for number, page in enumerate(pages, start=1):
        page.number = number
        page.label = f"{number:02d}"
    return pages


def paginate_portfolio(document: RenderablePortfolio) -> DocumentLayout:
    margins, sizes = document.margins, document.settings
    pages = [cover_page("PORTFOLIO", document.personal_header or document.portfolio_name,
                        document.created_at, margins)]
    for project in document.projects:
        pages.extend(project_pages(project, margins, sizes))
    if document.include_cv and document.cv is not None:
        pages.append(cv_page(document.cv, margins))
    number_pages(pages)

    within = True
    if document.portfolio_type == "SAMPLE":
        within = len(pages) <= SAMPLE_PAGE_GUIDELINE
    return DocumentLayout(
        title=document.portfolio_name,
        color_scheme=document.color_scheme,
        page_count=len(pages),
        within_guideline=within,
        pages=pages,
    )


def paginate_cv(document: RenderableCV) -> DocumentLayout:
    pages = number_pages([cv_page(document.cv, document.margins)])
    return DocumentLayout(
        title=document.personal_header or "Curriculum Vitae",
        color_scheme=document.color_scheme,
        page_count=len(pages),
        pages=pages,
    )
