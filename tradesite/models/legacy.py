"""Upgrade older or partial site documents to the current shape.

Exports made by earlier versions of the admin console stored some text fields
as bare strings, omitted optional sections and occasionally double-encoded
``defaultLocale``. This adapter only reshapes data; the result still has to
pass ``SiteData`` validation, so the strict schema is never relaxed.
"""

import copy
import json
from typing import Any, Dict, List, Optional

from tradesite.models.product import LOCALES

__all__ = ["upgrade_legacy_document", "upgrade_legacy_product", "normalize_locale_scalar"]

# Paths (relative to the owning object) that must hold localized text
_SETTINGS_TEXT = ("siteName", "tagline")
_HERO_TEXT = ("title", "subtitle", "ctaLabel")
_PRODUCT_TEXT = ("name", "shortDescription", "description", "leadTime")
_CONTACT_TEXT = ("address", "hours")
_ABOUT_TEXT = ("overview", "mission")
_SEO_PAGES = ("home", "products", "productDetail", "about", "contact", "admin")


def normalize_locale_scalar(value: Any, max_depth: int = 3) -> Any:
    """Strip JSON string layers from a scalar, e.g. ``'"\\"zh\\""'`` -> ``'zh'``."""
    for _ in range(max_depth):
        if not isinstance(value, str):
            return value
        text = value.strip()
        if not (text.startswith('"') and text.endswith('"')):
            return text
        try:
            value = json.loads(text)
        except ValueError:
            return text.strip('"')
    return value


def _localized(value: Any) -> Dict[str, str]:
    if isinstance(value, str):
        return {"en": value, "zh": ""}
    if isinstance(value, dict):
        return {locale: value.get(locale) or "" for locale in LOCALES}
    return {locale: "" for locale in LOCALES}


def _localize_fields(obj: Optional[Dict[str, Any]], fields) -> None:
    if not isinstance(obj, dict):
        return
    for field in fields:
        if field in obj:
            obj[field] = _localized(obj.get(field))


def _upgrade_seo(seo: Any) -> Dict[str, Any]:
    if not isinstance(seo, dict):
        seo = {}
    return {"title": _localized(seo.get("title")), "description": _localized(seo.get("description"))}


def upgrade_legacy_product(product: Dict[str, Any]) -> Dict[str, Any]:
    product = dict(product)
    _localize_fields(product, _PRODUCT_TEXT)
    if isinstance(product.get("price"), dict):
        price = dict(product["price"])
        if "unit" in price:
            price["unit"] = _localized(price["unit"])
        product["price"] = price
    if isinstance(product.get("features"), list):
        product["features"] = [_localized(f) for f in product["features"]]
    if isinstance(product.get("specs"), list):
        product["specs"] = [
            {"label": _localized(s.get("label")), "value": _localized(s.get("value"))}
            for s in product["specs"]
            if isinstance(s, dict)
        ]
    if "seo" in product:
        product["seo"] = _upgrade_seo(product["seo"])

    images: List[str] = [i for i in product.get("images") or [] if isinstance(i, str) and i]
    main_image = product.get("mainImage") or ""
    if main_image and main_image not in images:
        images.insert(0, main_image)
    if images and not main_image:
        main_image = images[0]
    product["images"] = images
    product["mainImage"] = main_image
    return product


def upgrade_legacy_document(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return an upgraded deep copy of ``raw``; ``raw`` itself is left untouched."""
    if not isinstance(raw, dict):
        return raw
    doc = copy.deepcopy(raw)

    if "defaultLocale" in doc:
        doc["defaultLocale"] = normalize_locale_scalar(doc["defaultLocale"])

    settings = doc.get("settings")
    _localize_fields(settings, _SETTINGS_TEXT)
    if isinstance(settings, dict) and "seoDefaults" in settings:
        settings["seoDefaults"] = _upgrade_seo(settings["seoDefaults"])

    _localize_fields(doc.get("hero"), _HERO_TEXT)
    _localize_fields(doc.get("contact"), _CONTACT_TEXT)
    _localize_fields(doc.get("about"), _ABOUT_TEXT)

    for key in ("advantages", "tradeRegions", "categories"):
        items = doc.get(key)
        if not isinstance(items, list):
            continue
        for item in items:
            if not isinstance(item, dict):
                continue
            for field in ("title", "description", "name", "markets"):
                if field in item:
                    item[field] = _localized(item[field])
            for sub in item.get("subcategories") or []:
                if isinstance(sub, dict):
                    sub["name"] = _localized(sub.get("name"))

    if isinstance(doc.get("products"), list):
        doc["products"] = [
            upgrade_legacy_product(p) if isinstance(p, dict) else p for p in doc["products"]
        ]

    seo = doc.get("seo")
    if isinstance(seo, dict):
        pages = seo.get("pages") if isinstance(seo.get("pages"), dict) else {}
        seo["pages"] = {name: _upgrade_seo(pages.get(name)) for name in _SEO_PAGES}

    return doc
