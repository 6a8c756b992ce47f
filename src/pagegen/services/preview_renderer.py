"""Standalone page preview.

Reconstructs a page from a serialized project schema (as exported by the
designer) and the component asset bundle, then renders it to static HTML.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jinja2 import DictLoader, Environment, select_autoescape

from ..domain.asset_models import AssetBundle
from ..domain.errors import PreviewError

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="{{ locale }}">
<head>
<meta charset="utf-8">
<title>{{ page.title or "页面预览" }}</title>
{% for url in stylesheets %}<link rel="stylesheet" href="{{ url }}">
{% endfor %}{% for url in scripts %}<script src="{{ url }}"></script>
{% endfor %}</head>
<body>
<div class="lowcode-plugin-sample-preview">
{{ body_html|safe }}
</div>
<script type="application/json" id="preview-data-source">{{ data_source_json|safe }}</script>
</body>
</html>
"""

_NODE_TEMPLATE = """{% macro node(n) -%}
{%- set info = components.get(n.componentName, {}) -%}
<div class="lc-node" data-component="{{ n.componentName }}"{% if n.id %} id="{{ n.id }}"{% endif %}{% if info.package %} data-package="{{ info.package }}"{% endif %}{% if info.library %} data-library="{{ info.library }}"{% endif %}{% if info.exportName %} data-export="{{ info.exportName }}{% if info.subName %}.{{ info.subName }}{% endif %}"{% endif %}>
{%- if n.props and n.props.children is string %}{{ n.props.children }}{% endif %}
{%- for child in n.children or [] %}{{ node(child) }}{% endfor -%}
</div>
{%- endmacro %}{{ node(root) }}"""


def _build_env() -> Environment:
    return Environment(
        loader=DictLoader({"page.html": _PAGE_TEMPLATE, "node.html": _NODE_TEMPLATE}),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=True),
        trim_blocks=True,
        lstrip_blocks=True,
    )


_ENV = _build_env()


def merge_data_sources(page_source: Any, project_source: Any) -> Dict[str, Any]:
    """Deep-merge the project-level data source into the page's; lists concatenate."""

    def merge(dst: Any, src: Any) -> Any:
        if isinstance(dst, list):
            return dst + list(src or [])
        if isinstance(dst, dict) and isinstance(src, dict):
            out = dict(dst)
            for key, value in src.items():
                out[key] = merge(out[key], value) if key in out else copy.deepcopy(value)
            return out
        return copy.deepcopy(src) if src is not None else dst

    base = copy.deepcopy(page_source) if isinstance(page_source, dict) else {}
    return merge(base, project_source or {})


@dataclass
class PreviewPage:
    schema: Dict[str, Any]
    components: Dict[str, Dict[str, Any]]
    library_map: Dict[str, str]
    asset_urls: List[str]
    i18n: Dict[str, Any] = field(default_factory=dict)
    data_source: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        return self.schema.get("title")


def build_preview(project_schema: Dict[str, Any], assets: AssetBundle) -> PreviewPage:
    if not isinstance(project_schema, dict):
        raise PreviewError("preview data must be a project schema object")
    tree = project_schema.get("componentsTree")
    if not isinstance(tree, list) or not tree or not isinstance(tree[0], dict):
        raise PreviewError("preview data has no componentsTree")

    components: Dict[str, Dict[str, Any]] = {}
    for entry in project_schema.get("componentsMap") or []:
        if isinstance(entry, dict) and entry.get("componentName"):
            components[entry["componentName"]] = dict(entry)

    library_map: Dict[str, str] = {}
    asset_urls: List[str] = []
    for pkg in assets.packages:
        if pkg.library:
            library_map[pkg.package] = pkg.library
        if pkg.urls:
            asset_urls.extend(pkg.urls)
    for info in components.values():
        library = library_map.get(info.get("package", ""))
        if library:
            info["library"] = library

    page = tree[0]
    return PreviewPage(
        schema=page,
        components=components,
        library_map=library_map,
        asset_urls=asset_urls,
        i18n=project_schema.get("i18n") or {},
        data_source=merge_data_sources(page.get("dataSource"), project_schema.get("dataSource")),
    )


def render_preview_html(page: PreviewPage, locale: str = "zh-CN") -> str:
    body_html = _ENV.get_template("node.html").render(root=page.schema, components=page.components)
    return _ENV.get_template("page.html").render(
        page=page,
        locale=locale,
        stylesheets=[u for u in page.asset_urls if u.endswith(".css")],
        scripts=[u for u in page.asset_urls if u.endswith(".js")],
        body_html=body_html,
        data_source_json=json.dumps(page.data_source, ensure_ascii=False).replace("</", "<\\/"),
    )
