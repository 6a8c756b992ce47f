from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class NpmInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    package: str
    version: Optional[str] = None
    export_name: Optional[str] = Field(default=None, alias="exportName")
    main: Optional[str] = None
    destructuring: bool = False
    sub_name: Optional[str] = Field(default=None, alias="subName")


class ComponentDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    component_name: str = Field(alias="componentName")
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    npm: Optional[NpmInfo] = None

    def map_entry(self) -> Dict[str, Any]:
        """Entry of the project-level ``componentsMap`` list."""
        entry: Dict[str, Any] = {"componentName": self.component_name}
        if self.npm:
            entry.update(self.npm.model_dump(by_alias=True, exclude_none=True))
            entry.setdefault("exportName", self.component_name)
        return entry

    def metadata(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"componentName": self.component_name}
        for key, value in (("title", self.title), ("description", self.description), ("category", self.category)):
            if value:
                meta[key] = value
        if self.npm:
            meta["package"] = self.npm.package
        return meta


class AssetPackage(BaseModel):
    package: str
    version: Optional[str] = None
    library: Optional[str] = None
    urls: Union[List[str], None] = None


class AssetBundle(BaseModel):
    packages: List[AssetPackage] = Field(default_factory=list)
    components: List[ComponentDescriptor] = Field(default_factory=list)
