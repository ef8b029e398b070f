from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

Locale = Literal["en", "zh"]
LOCALES: List[str] = ["en", "zh"]


class LocalizedText(BaseModel):
    # A missing translation is an empty string, never a missing key
    en: str = ""
    zh: str = ""

    def is_blank(self) -> bool:
        return not any(getattr(self, locale).strip() for locale in LOCALES)


class SeoContent(BaseModel):
    title: LocalizedText = Field(default_factory=LocalizedText)
    description: LocalizedText = Field(default_factory=LocalizedText)


class ProductPrice(BaseModel):
    amount: float = Field(0, ge=0)
    currency: str = "USD"
    unit: LocalizedText = Field(default_factory=LocalizedText)
    moq: int = Field(1, ge=0, description="Minimum order quantity")


class ProductSpec(BaseModel):
    label: LocalizedText = Field(default_factory=LocalizedText)
    value: LocalizedText = Field(default_factory=LocalizedText)


class TranslationStatus(BaseModel):
    en: bool = False
    zh: bool = False


class Product(BaseModel):
    id: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9_.\-]+$")
    sku: str = ""
    categoryId: str = ""
    subcategoryId: Optional[str] = None
    name: LocalizedText = Field(default_factory=LocalizedText)
    shortDescription: LocalizedText = Field(default_factory=LocalizedText)
    description: LocalizedText = Field(default_factory=LocalizedText)
    price: ProductPrice = Field(default_factory=ProductPrice)
    images: List[str] = Field(default_factory=list)
    mainImage: str = ""
    features: List[LocalizedText] = Field(default_factory=list)
    specs: List[ProductSpec] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    stockStatus: Literal["in_stock", "out_of_stock"] = "in_stock"
    leadTime: LocalizedText = Field(default_factory=LocalizedText)
    seo: SeoContent = Field(default_factory=SeoContent)
    translationStatus: TranslationStatus = Field(default_factory=TranslationStatus)
    createdAt: str = ""
    updatedAt: str = ""

    @model_validator(mode="after")
    def check_main_image(self) -> "Product":
        # An empty gallery is tolerated; the UI guards that display state
        if self.images and self.mainImage not in self.images:
            raise ValueError("mainImage must be one of images")
        return self


class ProductUpdate(BaseModel):
    """Partial product fields for PATCH /site-data/products/{id}."""

    sku: Optional[str] = None
    categoryId: Optional[str] = None
    subcategoryId: Optional[str] = None
    name: Optional[LocalizedText] = None
    shortDescription: Optional[LocalizedText] = None
    description: Optional[LocalizedText] = None
    price: Optional[ProductPrice] = None
    images: Optional[List[str]] = None
    mainImage: Optional[str] = None
    features: Optional[List[LocalizedText]] = None
    specs: Optional[List[ProductSpec]] = None
    certifications: Optional[List[str]] = None
    stockStatus: Optional[Literal["in_stock", "out_of_stock"]] = None
    leadTime: Optional[LocalizedText] = None
    seo: Optional[SeoContent] = None
    translationStatus: Optional[TranslationStatus] = None
