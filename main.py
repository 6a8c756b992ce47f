import json

import streamlit as st
from dotenv import load_dotenv

from src.pagegen.domain.errors import AssistantError, SessionBusyError
from src.pagegen.domain.generation_models import AssistantMode
from src.pagegen.domain.timeline_models import AssistantTurn, InFlightEntry, IterationMarker, UserTurn
from src.pagegen.services.assistant_controller import build_controller

st.set_page_config(page_title="AI 页面生成助手", page_icon="🤖", layout="centered")

st.markdown(
    """
    <style>
      :root { --brand:#0B5FFF; }
      .block-container { padding-top: 1.25rem; padding-bottom: 2rem; max-width: 980px; }
      div.stButton > button[kind="primary"] { background: var(--brand); border-color: var(--brand); color: #fff; }
      div.stButton > button { width: 100%; }
      .pagegen-muted { color: #475467; font-size: .95rem; }
    </style>
    """,
    unsafe_allow_html=True,
)

load_dotenv()

WELCOME = """👋 你好！我是AI页面生成助手。

描述你想要的页面，我会为你生成页面结构，确认后再应用到设计器中。例如：
- 创建一个用户登录页面
- 生成一个带搜索和分页的用户列表
- 做一个包含统计卡片的数据看板
"""

MODE_LABELS = {
    AssistantMode.STANDARD: "标准模式",
    AssistantMode.SMART_MATERIAL_SELECTION: "智能物料选择",
}

# ---------- Session State ----------
if "controller" not in st.session_state:
    st.session_state.controller = build_controller()
if "last_notice" not in st.session_state:
    st.session_state.last_notice = ""

controller = st.session_state.controller


def render_entry(entry) -> None:
    if isinstance(entry, UserTurn):
        with st.chat_message("user"):
            st.markdown(entry.content)
    elif isinstance(entry, AssistantTurn):
        with st.chat_message("assistant"):
            if entry.is_error:
                st.error(entry.content)
            else:
                st.markdown(entry.content)
    elif isinstance(entry, IterationMarker):
        record = entry.record
        status = "已完成" if record.completed else "进行中"
        detail = f"，结果大小 {record.result_size}" if record.produced_result else ""
        st.caption(f"🔄 第 {record.iteration_index} 轮迭代 · {status}{detail}")
    elif isinstance(entry, InFlightEntry):
        with st.chat_message("assistant"):
            st.text(entry.streaming_text)
            if entry.is_complete and entry.used_fallback:
                st.caption("已使用普通请求完成生成")


# ---------- Sidebar ----------
with st.sidebar:
    st.subheader("生成设置")
    state = controller.snapshot()
    modes = list(MODE_LABELS)
    selected = st.radio(
        "生成模式",
        modes,
        index=modes.index(state.mode),
        format_func=lambda m: MODE_LABELS[m],
        disabled=state.is_busy,
    )
    if selected != state.mode:
        try:
            controller.set_mode(selected)
        except SessionBusyError:
            st.warning("生成进行中，暂不能切换模式")

    st.divider()
    pending_count = len(controller.pending)
    st.markdown(f"<div class='pagegen-muted'>待应用的生成结果：{pending_count}</div>", unsafe_allow_html=True)
    if st.button("应用到设计器", type="primary", disabled=pending_count == 0 or state.is_busy):
        try:
            outcome = controller.confirm_and_apply()
        except AssistantError as exc:
            st.error(str(exc))
        else:
            if outcome is not None and outcome.discarded:
                st.session_state.last_notice = f"已应用最新结果，忽略了 {outcome.discarded} 个较早的结果"
            st.rerun()

    if st.button("清空对话", disabled=state.is_busy):
        try:
            controller.clear_chat()
            st.session_state.last_notice = ""
        except AssistantError as exc:
            st.error(str(exc))
        st.rerun()

    with st.expander("当前页面结构"):
        schema = controller.host.export_current_schema()
        if schema:
            st.code(json.dumps(schema, ensure_ascii=False, indent=2), language="json")
        else:
            st.caption("尚未应用任何生成结果")

# ---------- Chat ----------
st.title("AI 页面生成助手")
st.markdown("<hr/>", unsafe_allow_html=True)

if len(controller.timeline) == 0:
    with st.chat_message("assistant"):
        st.markdown(WELCOME)

for entry in controller.timeline.entries():
    render_entry(entry)

if st.session_state.last_notice:
    st.info(st.session_state.last_notice)

if controller.snapshot().conversation_ended:
    st.success("结果已应用，可以继续描述新的需求。")

prompt = st.chat_input("描述你想要生成的页面...")
if prompt:
    with st.chat_message("user"):
        st.markdown(prompt)
    with st.chat_message("assistant"):
        placeholder = st.empty()
        try:
            controller.submit_prompt(prompt, on_update=lambda text: placeholder.text(text))
        except SessionBusyError:
            st.warning("上一个生成任务仍在进行中")
        except ValueError as exc:
            st.warning(str(exc))
    st.session_state.last_notice = ""
    st.rerun()
