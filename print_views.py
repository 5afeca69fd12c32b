"""
HTML for laid-out documents.

Draws page descriptors from layout.py and makes no layout decisions of its own.
``unit="mm"`` is what the headless browser prints; ``unit="px"`` is the
on-screen preview, where millimeters are converted at layout.MM_TO_PX.
"""

from html import escape

from layout import Block, DocumentLayout, Page, Section, mm_to_px

UNITS = ("mm", "px")


def _len(mm: float, unit: str) -> str:
    if unit == "px":
        return f"{mm_to_px(mm):.2f}px"
    return f"{mm:.2f}mm"


def _box_style(block: Block, unit: str) -> str:
    box = block.box
    return (
        f"left:{_len(box.x, unit)};top:{_len(box.y, unit)};"
        f"width:{_len(box.width, unit)};height:{_len(box.height, unit)}"
    )


def _text(value) -> str:
    return escape(str(value)) if value else ""


def _section_html(section: Section) -> str:
    parts = [f'<div class="section-title">{_text(section.title)}</div>']
    for entry in section.entries:
        parts.append(
            '<div class="entry">'
            f'<div class="entry-heading">{_text(entry.heading)}</div>'
            f'<div class="entry-meta">{_text(entry.meta)}</div>'
            f'<div class="entry-text">{_text(entry.text)}</div>'
            "</div>"
        )
    if section.text:
        parts.append(f'<div class="section-text">{_text(section.text)}</div>')
    if section.items:
        parts.append('<div class="section-items">' + "<br>".join(_text(i) for i in section.items) + "</div>")
    return f'<div class="section">{"".join(parts)}</div>'


def _block_html(block: Block, unit: str) -> str:
    style = _box_style(block, unit)
    kind = block.kind
    if kind == "image":
        src = _text(block.image.path) if block.image else ""
        alt = _text(block.image.caption) if block.image else ""
        return f'<img class="block image fit-{block.fit or "cover"}" style="{style}" src="{src}" alt="{alt}">'
    if kind == "cover-title":
        inner = f'<div class="cover-title">{_text(block.title)}</div><div class="cover-subtitle">{_text(block.text)}</div>'
    elif kind == "title":
        inner = _text(block.title)
    elif kind == "meta-grid":
        inner = "".join(
            f'<div class="meta"><div class="meta-label">{_text(f.label)}</div>'
            f'<div class="meta-value">{_text(f.value)}</div></div>'
            for f in block.fields
        )
    elif kind in ("column", "cv"):
        inner = "".join(_section_html(s) for s in block.sections)
    else:
        inner = _text(block.text)
    return f'<div class="block {kind}" style="{style}">{inner}</div>'


def render_page(page: Page, unit: str = "mm") -> str:
    m = page.margins
    style = (
        f"width:{_len(page.width_mm, unit)};height:{_len(page.height_mm, unit)};"
        f"padding:{_len(m.top, unit)} {_len(m.right, unit)} {_len(m.bottom, unit)} {_len(m.left, unit)}"
    )
    blocks = "".join(_block_html(b, unit) for b in page.blocks)
    return (
        f'<section class="page page-{page.kind}" data-page="{page.label}" style="{style}">'
        f'{blocks}<div class="page-number">{page.label}</div></section>'
    )


def render_document(layout: DocumentLayout, unit: str = "mm") -> str:
    if unit not in UNITS:
        raise ValueError(f"unit must be one of {UNITS}")
    colors = layout.color_scheme
    pages = "\n".join(render_page(p, unit) for p in layout.pages)
    gap = "0" if unit == "mm" else "24px"
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{_text(layout.title)}</title>
<style>
  @page {{ size: A4; margin: 0; }}
  :root {{
    --primary: {colors.primary};
    --secondary: {colors.secondary};
    --accent: {colors.accent};
    --text-color: {colors.text};
    --light: {colors.light};
  }}
  * {{ box-sizing: border-box; }}
  body {{
    margin: 0;
    font-family: 'Helvetica Neue', Arial, sans-serif;
    color: var(--text-color);
    -webkit-print-color-adjust: exact;
    print-color-adjust: exact;
  }}
  .page {{
    position: relative;
    overflow: hidden;
    background: #fff;
    margin: 0 auto {gap};
    page-break-after: always;
    break-after: page;
  }}
  .page:last-child {{ page-break-after: auto; break-after: auto; }}
  .block {{ position: absolute; overflow: hidden; }}
  .image.fit-cover {{ object-fit: cover; }}
  .image.fit-contain {{ object-fit: contain; background: var(--light); }}
  .cover-title {{ font-size: 32pt; letter-spacing: -0.02em; text-align: center; }}
  .cover-subtitle {{ font-size: 13pt; color: var(--secondary); text-align: center; }}
  .cover-year {{ font-size: 8pt; text-align: center; color: var(--secondary); }}
  .accent-bar {{ background: var(--accent); }}
  .title {{ font-size: 18pt; font-weight: bold; }}
  .subtitle {{ font-size: 8pt; color: var(--secondary); }}
  .meta-grid {{ display: grid; grid-template-columns: repeat(3, 1fr); gap: 4mm; font-size: 10pt; }}
  .meta-label, .section-title {{ font-size: 7pt; font-weight: bold; text-transform: uppercase; color: var(--accent); }}
  .text, .section-text, .entry-text {{ font-size: 9pt; line-height: 1.45; text-align: justify; }}
  .section {{ border-left: 0.6mm solid var(--accent); padding-left: 2mm; margin-bottom: 3mm; }}
  .section-items {{ font-size: 9pt; }}
  .entry {{ margin-bottom: 1.5mm; font-size: 8.5pt; }}
  .entry-heading {{ font-weight: 600; }}
  .entry-meta {{ font-size: 7.5pt; color: var(--secondary); }}
  .page-number {{ position: absolute; right: 8mm; bottom: 6mm; font-size: 7pt; color: var(--secondary); }}
</style>
</head>
<body>
{pages}
</body>
</html>
"""
