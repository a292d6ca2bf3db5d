from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from exgate.core.utils.locale import Locale

# Either a plain string or a mapping of language tag -> text
LocalizedText = Union[str, Dict[str, str]]


def resolve_text(value: Optional[LocalizedText], locale: Locale) -> Optional[str]:
    """Pick the best translation: full tag, then language, then 'en', then any."""
    if value is None or isinstance(value, str):
        return value
    if not value:
        return None
    for key in (locale.tag, locale.language, "en"):
        if key in value:
            return value[key]
    return next(iter(value.values()))


class CatalogType(BaseModel):
    """An extension type as declared in a catalog file"""

    id: str
    label: LocalizedText


class CatalogExtension(BaseModel):
    """An extension as declared in a catalog file"""

    id: str = Field(
        pattern=r"^[A-Za-z0-9_-]+$",
        description="Unique extension id; must be usable in URL paths",
    )
    label: LocalizedText
    version: Optional[str] = None
    type: str
    link: Optional[str] = None
    installed: bool = Field(
        default=False,
        description="Initial installation state when the catalog is first loaded",
    )
    description: Optional[LocalizedText] = None
    background_color: Optional[str] = Field(default=None, alias="background-color")
    image_link: Optional[str] = Field(default=None, alias="image-link")
    detail_available: bool = Field(
        default=True,
        alias="detail-available",
        description=(
            "If set to False, the extension is listed but "
            "no detail is served for it."
        ),
    )


class Catalog(BaseModel):
    """Root of a catalog file"""

    name: Optional[str] = None
    types: List[CatalogType] = []
    extensions: List[CatalogExtension] = []

    @field_validator("extensions")
    @classmethod
    def unique_extension_ids(cls, extensions: List[CatalogExtension]) -> List[CatalogExtension]:
        seen = set()
        for ext in extensions:
            if ext.id in seen:
                raise ValueError(f"duplicate extension id '{ext.id}'")
            seen.add(ext.id)
        return extensions

    @model_validator(mode="after")
    def known_types(self) -> "Catalog":
        type_ids = {t.id for t in self.types}
        for ext in self.extensions:
            if type_ids and ext.type not in type_ids:
                raise ValueError(f"extension '{ext.id}' refers to unknown type '{ext.type}'")
        return self
