import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Optional

from core.charts import table_heatmap
from core.data import ReferenceTable, load_reference_table, reload_reference_table, table_summary
from core.errors import INVALID_INPUT, OUT_OF_RANGE, TABLE_UNAVAILABLE, DensityCalcError, TableNotLoadedError
from core.logging_config import setup_logging
from core.settings import normalize_settings, settings_from_env
from core.variation import Observation, compute_variation

alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .result-pass {color: #15803d;font-weight: 600;}
        .result-fail {color: #b91c1c;font-weight: 600;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def load_table_into_session(source: str, timeout: float, force: bool = False) -> None:
    if force:
        reload_reference_table()
    try:
        st.session_state["table"] = load_reference_table(source, timeout=timeout)
        st.session_state["table_error"] = None
    except DensityCalcError as exc:
        st.session_state["table"] = None
        st.session_state["table_error"] = exc
    st.session_state["table_source"] = source


def render_failure(exc: DensityCalcError):
    if exc.kind in (TABLE_UNAVAILABLE, INVALID_INPUT):
        st.error(f"🛑 {exc.user_message}")
    elif exc.kind == OUT_OF_RANGE:
        st.warning(f"🛑 {exc.user_message}")
    else:
        st.error(str(exc))
    with st.expander("Details"):
        st.code(exc.message)


def render_table_status(table: Optional[ReferenceTable], error: Optional[DensityCalcError]):
    if table is None:
        render_failure(error or TableNotLoadedError())
        return
    summary = table_summary(table)
    if summary["degenerate"]:
        st.warning("Reference table loaded but has no usable rows or columns. Every conversion will fail.")
    else:
        st.success(
            f"✅ Reference table loaded: {summary['rows']} densities × {summary['columns']} temperatures. "
            "Ready for calculation."
        )
    if summary["non_numeric_cells"]:
        st.caption(f"{summary['non_numeric_cells']} non-numeric cells in the table.")


def render_result(payload: dict):
    formatted = payload["formatted"]
    cols = st.columns(3)
    cols[0].metric("Dispatch Density at 15°C", formatted["dispatch_density_15c"])
    cols[1].metric("Receiving Density at 15°C", formatted["receiving_density_15c"])
    cols[2].metric("Absolute Difference", formatted["absolute_difference"], help=f"Limit {formatted['tolerance']}")
    st.markdown("---")
    if payload["result"]["acceptable"]:
        st.markdown("<h3 class='result-pass'>✅ Result: ACCEPTABLE</h3>", unsafe_allow_html=True)
        st.markdown(f"<p class='result-pass'>{payload['message']}</p>", unsafe_allow_html=True)
    else:
        st.markdown("<h3 class='result-fail'>❌ Result: UNACCEPTABLE</h3>", unsafe_allow_html=True)
        st.markdown(f"<p class='result-fail'>{payload['message']}</p>", unsafe_allow_html=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Density Variation Calculator", layout="centered")
setup_logging()
inject_base_styles()
st.markdown(
    "<div class='app-top-bar'><div class='breadcrumb'>Custody transfer</div>"
    "<div class='page-title'>Density Variation Calculator</div></div>",
    unsafe_allow_html=True,
)
st.caption("Standardizes dispatch and receiving densities to 15°C and checks the variation against the limit.")

env_settings = settings_from_env()

with st.sidebar:
    st.markdown("### Reference table")
    source = st.text_input("CSV source (URL or path)", value=env_settings.table_source)
    reload_clicked = st.button("Reload table")
    st.markdown("---")
    st.markdown("### Settings")
    tolerance = st.number_input(
        f"Acceptable variation ({env_settings.density_unit})",
        min_value=0.0,
        value=float(env_settings.tolerance),
        step=0.1,
    )
    enforce_range = st.checkbox(
        "Reject readings outside the table range",
        value=env_settings.enforce_table_range,
        help="Off: readings beyond the table use the nearest boundary entry.",
    )

settings = normalize_settings(
    {
        "table_source": source,
        "tolerance": tolerance,
        "fetch_timeout": env_settings.fetch_timeout,
        "enforce_table_range": enforce_range,
        "density_unit": env_settings.density_unit,
    }
)

if reload_clicked or st.session_state.get("table_source") != settings.table_source:
    load_table_into_session(settings.table_source, settings.fetch_timeout, force=reload_clicked)

table: Optional[ReferenceTable] = st.session_state.get("table")
render_table_status(table, st.session_state.get("table_error"))

with st.form("variation_form"):
    left, right = st.columns(2)
    with left:
        st.markdown("**Dispatch**")
        dispatch_temp = st.text_input("Temperature (°C)", key="dispatchTemp")
        dispatch_density = st.text_input(f"Observed density ({settings.density_unit})", key="dispatchDensity")
    with right:
        st.markdown("**Receiving**")
        receiving_temp = st.text_input("Temperature (°C)", key="receivingTemp")
        receiving_density = st.text_input(f"Observed density ({settings.density_unit})", key="receivingDensity")
    submitted = st.form_submit_button("Calculate Variation")

if submitted:
    with card("Calculation Summary"):
        try:
            payload = compute_variation(
                Observation(dispatch_temp, dispatch_density),
                Observation(receiving_temp, receiving_density),
                table,
                settings,
            )
        except DensityCalcError as exc:
            render_failure(exc)
        else:
            render_result(payload)

if table is not None and not table.is_degenerate:
    with st.expander("Reference table", expanded=False):
        st.altair_chart(table_heatmap(table, unit=settings.density_unit), use_container_width=True)
        frame: pd.DataFrame = table.to_frame()
        st.dataframe(frame, use_container_width=True)
