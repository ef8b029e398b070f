# tradesite/data/defaults.py
import copy
import json
from pathlib import Path
from typing import Any, Dict

from tradesite.models.site import SiteData

DEFAULT_DATA_FILE = Path(__file__).parent / "site-data.json"


def _text() -> Dict[str, str]:
    return {"en": "", "zh": ""}


def _seo() -> Dict[str, Any]:
    return {"title": _text(), "description": _text()}


# Typed empty values for every section, used to fill partially-written shards
_SECTION_SKELETONS: Dict[str, Any] = {
    "locales": lambda: ["en", "zh"],
    "defaultLocale": lambda: "en",
    "settings": lambda: {
        "siteName": _text(),
        "tagline": _text(),
        "logoUrl": "",
        "adminPassword": "",
        "seoDefaults": _seo(),
        "twitterHandle": "",
    },
    "hero": lambda: {
        "title": _text(),
        "subtitle": _text(),
        "ctaLabel": _text(),
        "backgroundImage": "",
        "backgroundVideo": "",
    },
    "advantages": list,
    "partners": list,
    "tradeRegions": list,
    "categories": list,
    "featuredProductIds": list,
    "about": lambda: {"overview": _text(), "mission": _text(), "timeline": [], "team": []},
    "contact": lambda: {
        "phone": "",
        "email": "",
        "whatsapp": "",
        "address": _text(),
        "hours": _text(),
        "map": {"lat": 0, "lng": 0, "zoom": 10},
        "socials": [],
    },
    "seo": lambda: {
        "pages": {
            page: _seo()
            for page in ("home", "products", "productDetail", "about", "contact", "admin")
        }
    },
}


def default_section(name: str) -> Any:
    """Return a fresh skeleton value for ``name``."""
    return _SECTION_SKELETONS[name]()


def deep_merge(target: Any, source: Any) -> Any:
    """Overlay ``source`` on ``target``.

    Nested dicts merge key by key; lists, scalars and None values in ``source``
    replace what is in ``target`` (None only when target has no dict there).
    """
    if not isinstance(source, dict) or not isinstance(target, dict):
        return copy.deepcopy(source) if source is not None else target
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        elif value is None and key in result:
            continue
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_default_site_data() -> SiteData:
    """Parse the bundled default dataset. Returns a new object on every call."""
    with open(DEFAULT_DATA_FILE, encoding="utf-8") as f:
        return SiteData.model_validate(json.load(f))
