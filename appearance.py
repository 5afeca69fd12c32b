"""
Color scheme, margin and block-size resolution.

Every value is taken from the first tier that sets it:

    1. per-document override (portfolio settings blob)
    2. global AppSettings
    3. hard-coded defaults (``classic`` scheme, 15mm margins, 200/120/120/40mm blocks)

Resolution is done field by field, so a portfolio overriding only the top
margin still inherits the other three sides from AppSettings.
"""

from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from schemas import AppSettings, LayoutSizes, Margins, PortfolioSettings


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ColorScheme(WireModel):
    primary: str
    secondary: str
    accent: str
    text: str
    light: str


class ResolvedMargins(WireModel):
    top: float
    bottom: float
    left: float
    right: float


class ResolvedSizes(WireModel):
    hero_height_mm: float
    strip_height_mm: float
    tech_height_mm: float
    thumb_height_mm: float


class Appearance(BaseModel):
    color_scheme: ColorScheme
    margins: ResolvedMargins
    sizes: ResolvedSizes


COLOR_SCHEMES = {
    "classic": ColorScheme(primary="#000", secondary="#666", accent="#DC2626", text="#000", light="#F5F5F5"),
    "modernBlue": ColorScheme(primary="#000", secondary="#666", accent="#2563EB", text="#000", light="#F5F5F5"),
    "warmMinimal": ColorScheme(primary="#000", secondary="#666", accent="#EA580C", text="#000", light="#F5F5F5"),
}
DEFAULT_SCHEME = "classic"
DEFAULT_MARGIN_MM = 15.0
DEFAULT_SIZES = ResolvedSizes(hero_height_mm=200, strip_height_mm=120, tech_height_mm=120, thumb_height_mm=40)

MARGIN_SIDES = ("top", "bottom", "left", "right")
SIZE_FIELDS = ("hero_height_mm", "strip_height_mm", "tech_height_mm", "thumb_height_mm")


def resolve_color_scheme(tiers: Sequence[Optional[str]]) -> ColorScheme:
    """First tier naming a known scheme wins; unknown names fall through."""
    for name in tiers:
        if name in COLOR_SCHEMES:
            return COLOR_SCHEMES[name].model_copy()
    return COLOR_SCHEMES[DEFAULT_SCHEME].model_copy()


def resolve_margins(tiers: Sequence[Optional[Margins]]) -> ResolvedMargins:
    resolved = {}
    for side in MARGIN_SIDES:
        value = next((getattr(t, side) for t in tiers if t is not None and getattr(t, side) is not None), None)
        resolved[side] = DEFAULT_MARGIN_MM if value is None else float(value)
    return ResolvedMargins(**resolved)


def resolve_sizes(tiers: Sequence[Optional[LayoutSizes]]) -> ResolvedSizes:
    resolved = {}
    for name in SIZE_FIELDS:
        value = next((getattr(t, name) for t in tiers if t is not None and getattr(t, name) is not None), None)
        resolved[name] = getattr(DEFAULT_SIZES, name) if value is None else float(value)
    return ResolvedSizes(**resolved)


def _parse(model_cls, raw: Any):
    # Stored blobs predate validation; an unreadable tier is treated as unset.
    if raw is None:
        return None
    if isinstance(raw, model_cls):
        return raw
    try:
        return model_cls.model_validate(raw)
    except ValidationError:
        return None


def resolve_appearance(override: Any = None, app_settings: Any = None) -> Appearance:
    """Resolve a document's appearance from its override blob and the global settings document."""
    portfolio = _parse(PortfolioSettings, override)
    global_ = _parse(AppSettings, app_settings)
    tiers = [portfolio, global_]
    return Appearance(
        color_scheme=resolve_color_scheme([t.color_scheme if t else None for t in tiers]),
        margins=resolve_margins([t.margins if t else None for t in tiers]),
        sizes=resolve_sizes(tiers),
    )
