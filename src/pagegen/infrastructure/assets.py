from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..domain.asset_models import AssetBundle

LOG = logging.getLogger("pagegen.assets")

_NEXT_PACKAGE = "@alifd/next"
_NEXT_VERSION = "1.26.4"

# (componentName, exportName, subName, title, category)
_NEXT_COMPONENTS = (
    ("NextButton", "Button", None, "按钮", "基础"),
    ("NextInput", "Input", None, "输入框", "表单"),
    ("NextForm", "Form", None, "表单容器", "表单"),
    ("NextFormItem", "Form", "Item", "表单项", "表单"),
    ("NextSelect", "Select", None, "选择器", "表单"),
    ("NextCheckbox", "Checkbox", None, "复选框", "表单"),
    ("NextRadio", "Radio", None, "单选框", "表单"),
    ("NextTable", "Table", None, "表格", "数据展示"),
    ("NextCard", "Card", None, "卡片", "数据展示"),
    ("NextTabs", "Tab", None, "选项卡", "导航"),
    ("NextDialog", "Dialog", None, "对话框", "反馈"),
    ("NextRow", "Grid", "Row", "行", "布局"),
    ("NextCol", "Grid", "Col", "列", "布局"),
    ("NextBox", "Box", None, "布局容器", "布局"),
)


def _default_bundle_data() -> Dict[str, Any]:
    components: List[Dict[str, Any]] = []
    for name, export_name, sub_name, title, category in _NEXT_COMPONENTS:
        npm: Dict[str, Any] = {
            "package": _NEXT_PACKAGE,
            "version": _NEXT_VERSION,
            "exportName": export_name,
            "main": "",
            "destructuring": True,
        }
        if sub_name:
            npm["subName"] = sub_name
        components.append({"componentName": name, "title": title, "category": category, "npm": npm})
    return {
        "packages": [
            {
                "package": _NEXT_PACKAGE,
                "version": _NEXT_VERSION,
                "library": "Next",
                "urls": [
                    f"https://g.alicdn.com/code/lib/alifd__next/{_NEXT_VERSION}/next.min.css",
                    f"https://g.alicdn.com/code/lib/alifd__next/{_NEXT_VERSION}/next-with-locales.min.js",
                ],
            }
        ],
        "components": components,
    }


def default_asset_bundle() -> AssetBundle:
    return AssetBundle.model_validate(_default_bundle_data())


def load_asset_bundle(path: Optional[str | Path]) -> AssetBundle:
    """Read an ``assets.json`` style bundle; without a path the built-in Fusion Next bundle is used."""
    if not path:
        return default_asset_bundle()
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    bundle = AssetBundle.model_validate(data)
    LOG.info("asset_bundle_loaded", extra={"path": str(p), "components": len(bundle.components)})
    return bundle
