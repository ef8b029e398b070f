from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter

from tradesite.models.product import LocalizedText, Locale, Product, SeoContent


class SiteSettings(BaseModel):
    siteName: LocalizedText = Field(default_factory=LocalizedText)
    tagline: LocalizedText = Field(default_factory=LocalizedText)
    logoUrl: str = ""
    adminPassword: str = ""
    seoDefaults: SeoContent = Field(default_factory=SeoContent)
    twitterHandle: str = ""


class HeroContent(BaseModel):
    title: LocalizedText = Field(default_factory=LocalizedText)
    subtitle: LocalizedText = Field(default_factory=LocalizedText)
    ctaLabel: LocalizedText = Field(default_factory=LocalizedText)
    backgroundImage: str = ""
    backgroundVideo: str = ""


class Advantage(BaseModel):
    id: str
    icon: str = ""
    title: LocalizedText = Field(default_factory=LocalizedText)
    description: LocalizedText = Field(default_factory=LocalizedText)


class Partner(BaseModel):
    id: str
    name: str
    logoUrl: Optional[str] = None


class TradeRegion(BaseModel):
    id: str
    name: LocalizedText = Field(default_factory=LocalizedText)
    markets: LocalizedText = Field(default_factory=LocalizedText)


class Subcategory(BaseModel):
    id: str
    name: LocalizedText = Field(default_factory=LocalizedText)


class Category(BaseModel):
    id: str
    name: LocalizedText = Field(default_factory=LocalizedText)
    subcategories: List[Subcategory] = Field(default_factory=list)


class MapLocation(BaseModel):
    lat: float = 0
    lng: float = 0
    zoom: int = 10


class SocialLink(BaseModel):
    platform: str
    url: str


class ContactInfo(BaseModel):
    phone: str = ""
    email: str = ""
    whatsapp: str = ""
    address: LocalizedText = Field(default_factory=LocalizedText)
    hours: LocalizedText = Field(default_factory=LocalizedText)
    map: MapLocation = Field(default_factory=MapLocation)
    socials: List[SocialLink] = Field(default_factory=list)


class TimelineEntry(BaseModel):
    year: str
    content: LocalizedText = Field(default_factory=LocalizedText)


class TeamMember(BaseModel):
    name: str
    role: LocalizedText = Field(default_factory=LocalizedText)
    bio: LocalizedText = Field(default_factory=LocalizedText)


class AboutContent(BaseModel):
    overview: LocalizedText = Field(default_factory=LocalizedText)
    mission: LocalizedText = Field(default_factory=LocalizedText)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    team: List[TeamMember] = Field(default_factory=list)


class SeoPages(BaseModel):
    home: SeoContent = Field(default_factory=SeoContent)
    products: SeoContent = Field(default_factory=SeoContent)
    productDetail: SeoContent = Field(default_factory=SeoContent)
    about: SeoContent = Field(default_factory=SeoContent)
    contact: SeoContent = Field(default_factory=SeoContent)
    admin: SeoContent = Field(default_factory=SeoContent)


class SiteSeo(BaseModel):
    pages: SeoPages = Field(default_factory=SeoPages)


class SiteData(BaseModel):
    locales: List[Locale] = Field(default_factory=lambda: ["en", "zh"])
    defaultLocale: Locale = "en"
    settings: SiteSettings = Field(default_factory=SiteSettings)
    hero: HeroContent = Field(default_factory=HeroContent)
    advantages: List[Advantage] = Field(default_factory=list)
    partners: List[Partner] = Field(default_factory=list)
    tradeRegions: List[TradeRegion] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    featuredProductIds: List[str] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    about: AboutContent = Field(default_factory=AboutContent)
    contact: ContactInfo = Field(default_factory=ContactInfo)
    seo: SiteSeo = Field(default_factory=SiteSeo)


# Top-level slices that can be stored and patched on their own
SECTION_TYPES: Dict[str, Any] = {
    "locales": List[Locale],
    "defaultLocale": Locale,
    "settings": SiteSettings,
    "hero": HeroContent,
    "advantages": List[Advantage],
    "partners": List[Partner],
    "tradeRegions": List[TradeRegion],
    "categories": List[Category],
    "featuredProductIds": List[str],
    "about": AboutContent,
    "contact": ContactInfo,
    "seo": SiteSeo,
}
SECTIONS = tuple(SECTION_TYPES)

_section_adapters = {name: TypeAdapter(tp) for name, tp in SECTION_TYPES.items()}


def validate_section(name: str, value: Any) -> Any:
    """Validate a section value and return its plain JSON-compatible form.

    Raises KeyError for unknown sections and pydantic.ValidationError for bad
    values.
    """
    adapter = _section_adapters[name]
    return adapter.dump_python(adapter.validate_python(value), mode="json")


def is_empty_document(doc: SiteData) -> bool:
    """A document with no site name, no hero title and no products holds no real data.

    Other populated fields (contact info, categories, ...) do not count.
    """
    return doc.settings.siteName.is_blank() and doc.hero.title.is_blank() and not doc.products


class RepairReport(BaseModel):
    """Drift between a collection index and its record shards."""

    missingProducts: List[str] = Field(default_factory=list)
    orphanProducts: List[str] = Field(default_factory=list)
    missingInquiries: List[str] = Field(default_factory=list)
    orphanInquiries: List[str] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (
            self.missingProducts or self.orphanProducts or self.missingInquiries or self.orphanInquiries
        )
