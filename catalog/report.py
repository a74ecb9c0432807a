import os
from itertools import groupby
from pathlib import Path
from typing import Dict, List, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .models import MenuItem

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

IMAGE_BASE = os.getenv(
    "IMAGE_BASE",
    "https://raw.githubusercontent.com/Meta-Mobile-Developer-PC/"
    "Working-With-Data-API/main/images/",
)

REPORT_THEME = os.getenv("REPORT_THEME", "light").strip().lower()
if REPORT_THEME not in ("light", "dark"):
    REPORT_THEME = "light"

THEMES = {
    "light": {
        "page_bg": "#ffffff",
        "banner_bg": "#495E57",
        "banner_text": "#F4CE14",
        "text_primary": "#333333",
        "text_secondary": "#555555",
        "price": "#495E57",
        "chip_bg": "#EDEFEE",
    },
    "dark": {
        "page_bg": "#121212",
        "banner_bg": "#1E1E1E",
        "banner_text": "#F4CE14",
        "text_primary": "#F1F1F1",
        "text_secondary": "#BBBBBB",
        "price": "#8FD3B6",
        "chip_bg": "#333333",
    },
}


def image_url(image: str, base: str = IMAGE_BASE) -> str:
    if not image:
        return ""
    if image.startswith(("http://", "https://")):
        return image
    return f"{base}{image}"


def _price_str(price: str) -> str:
    return f"${price}" if price else ""


def _sections(items: Sequence[MenuItem], base: str) -> List[Dict]:
    # Items arrive in (category, name) order, so groupby yields each category once.
    sections = []
    for category, group in groupby(items, key=lambda it: it.category):
        sections.append(
            {
                "title": category or "Other",
                "dishes": [
                    {
                        "name": it.name,
                        "description": it.description,
                        "price_str": _price_str(it.price),
                        "image_url": image_url(it.image, base),
                    }
                    for it in group
                ],
            }
        )
    return sections


def _filter_summary(term: str, categories: Sequence[str], count: int) -> str:
    parts = [f"{count} item{'s' if count != 1 else ''}"]
    if term:
        parts.append(f"matching '{term}'")
    if categories:
        parts.append("in " + ", ".join(sorted(categories)))
    return " ".join(parts)


def build_plaintext_menu(
    items: Sequence[MenuItem], term: str = "", categories: Sequence[str] = ()
) -> str:
    template = env.get_template("menu_text.txt")
    return template.render(
        summary_text=_filter_summary(term, categories, len(items)),
        sections=_sections(items, IMAGE_BASE),
    )


def build_html_menu(
    items: Sequence[MenuItem],
    term: str = "",
    categories: Sequence[str] = (),
    all_categories: Sequence[str] = (),
    theme: str = REPORT_THEME,
) -> str:
    template = env.get_template("menu.html")
    colors = THEMES.get(theme, THEMES["light"])
    active = set(categories)
    return template.render(
        title="Little Lemon menu",
        summary_text=_filter_summary(term, categories, len(items)),
        sections=_sections(items, IMAGE_BASE),
        chips=[{"name": c, "active": c in active} for c in all_categories],
        colors=colors,
    )
