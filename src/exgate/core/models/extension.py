from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ExtensionType(BaseModel):
    """A category used to group extensions for display, e.g. 'binding'."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str


class Extension(BaseModel):
    """An installable unit (binding, add-on, UI...) as reported by a provider.

    The gateway treats everything except `id` as opaque and forwards it as is.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    version: Optional[str] = None
    type: str
    link: Optional[str] = None
    installed: bool = False
    description: Optional[str] = None
    background_color: Optional[str] = Field(default=None, alias="backgroundColor")
    image_link: Optional[str] = Field(default=None, alias="imageLink")
