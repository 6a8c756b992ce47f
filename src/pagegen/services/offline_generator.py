"""Deterministic page generator used when no generation service is available.

It answers with one of a few canned page templates picked from keywords in
the prompt, and streams them with the same frame format as the real service
so the whole client pipeline can be exercised offline.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..domain.generation_models import GenerationRequest, GenerationResponse
from .generation_client import DEFAULT_MATERIALS


def _page(title: str, children: List[Dict[str, Any]], suffix: str, padded: bool = True) -> Dict[str, Any]:
    style: Dict[str, Any] = {"height": "100%"}
    if padded:
        style["padding"] = "20px"
    return {
        "componentName": "Page",
        "id": f"node_{suffix}",
        "props": {"style": style},
        "fileName": "/",
        "dataSource": {"list": []},
        "state": {},
        "css": "",
        "lifeCycles": {},
        "methods": {},
        "hidden": False,
        "title": title,
        "isLocked": False,
        "condition": True,
        "conditionGroup": "",
        "children": children,
    }


def _form_item(label: Optional[str], field_id: str, child: Dict[str, Any], **props: Any) -> Dict[str, Any]:
    item_props: Dict[str, Any] = dict(props)
    if label:
        item_props["label"] = label
        item_props["required"] = True
    return {"componentName": "FormItem", "id": f"formitem_{field_id}", "props": item_props, "children": [child]}


def login_page(suffix: str) -> Dict[str, Any]:
    form = {
        "componentName": "Form",
        "id": f"form_{suffix}",
        "props": {
            "labelCol": {"span": 6},
            "wrapperCol": {"span": 18},
            "style": {
                "maxWidth": "400px",
                "margin": "50px auto",
                "padding": "20px",
                "border": "1px solid #d9d9d9",
                "borderRadius": "4px",
            },
        },
        "children": [
            _form_item(
                "用户名",
                f"username_{suffix}",
                {"componentName": "Input", "id": f"input_username_{suffix}", "props": {"placeholder": "请输入用户名"}},
            ),
            _form_item(
                "密码",
                f"password_{suffix}",
                {
                    "componentName": "Input",
                    "id": f"input_password_{suffix}",
                    "props": {"htmlType": "password", "placeholder": "请输入密码"},
                },
            ),
            _form_item(
                None,
                f"button_{suffix}",
                {
                    "componentName": "Button",
                    "id": f"button_login_{suffix}",
                    "props": {"type": "primary", "children": "登录", "style": {"width": "100%"}},
                },
                wrapperCol={"offset": 6, "span": 18},
            ),
        ],
    }
    return _page("登录页面", [form], suffix, padded=False)


def list_page(suffix: str) -> Dict[str, Any]:
    table = {
        "componentName": "Table",
        "id": f"table_{suffix}",
        "props": {
            "dataSource": [
                {"key": "1", "name": "张三", "age": 32, "address": "北京市朝阳区"},
                {"key": "2", "name": "李四", "age": 28, "address": "上海市浦东新区"},
                {"key": "3", "name": "王五", "age": 35, "address": "广州市天河区"},
            ],
            "columns": [
                {"title": "姓名", "dataIndex": "name", "key": "name"},
                {"title": "年龄", "dataIndex": "age", "key": "age"},
                {"title": "地址", "dataIndex": "address", "key": "address"},
            ],
        },
    }
    return _page("列表页面", [table], suffix)


def default_page(suffix: str) -> Dict[str, Any]:
    button = {
        "componentName": "Button",
        "id": f"button_{suffix}",
        "props": {"type": "primary", "children": "点击按钮", "style": {"margin": "20px"}},
    }
    return _page("默认页面", [button], suffix)


def pick_template(prompt: str) -> Callable[[str], Dict[str, Any]]:
    lowered = prompt.lower()
    if "登录" in prompt or "login" in lowered:
        return login_page
    if "列表" in prompt or "表格" in prompt:
        return list_page
    return default_page


def _frame(payload: Dict[str, Any]) -> str:
    return "data: " + json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


class OfflineTemplateTransport:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def _generate(self, prompt: str) -> Dict[str, Any]:
        suffix = str(int(self._clock() * 1000))
        return pick_template(prompt)(suffix)

    def issue_streaming(self, request: GenerationRequest) -> Iterator[str]:
        schema = self._generate(request.prompt)
        size = len(json.dumps(schema, ensure_ascii=False))
        yield _frame({"type": "start", "message": "开始分析需求..."})
        yield _frame({"type": "progress", "message": "正在匹配页面模板"})
        yield _frame(
            {
                "type": "iteration",
                "iteration": 1,
                "completed": True,
                "hasSchema": True,
                "schemaSize": size,
                "message": f"已选择模板: {schema['title']}",
            }
        )
        yield _frame(
            {
                "type": "complete",
                "message": f'已根据您的需求"{request.prompt}"生成页面',
                "schema": schema,
            }
        )

    def issue_synchronous(self, request: GenerationRequest) -> GenerationResponse:
        return GenerationResponse(
            success=True,
            message=f'已根据您的需求"{request.prompt}"生成页面',
            result=self._generate(request.prompt),
        )

    def fetch_available_materials(self) -> List[str]:
        return list(DEFAULT_MATERIALS)
