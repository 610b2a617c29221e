from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

from core.data import ReferenceTable

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def table_long_frame(table: ReferenceTable) -> pd.DataFrame:
    frame = table.to_frame()
    if frame.empty:
        return pd.DataFrame(columns=["observed_density", "temperature", "density_15c"])
    long_df = frame.reset_index().melt(
        id_vars="observed_density", var_name="temperature", value_name="density_15c"
    )
    return long_df.astype({"temperature": float})


def table_heatmap(table: ReferenceTable, unit: str = "kg/m³") -> alt.Chart:
    long_df = table_long_frame(table)
    return (
        alt.Chart(long_df)
        .mark_rect()
        .encode(
            x=alt.X("temperature:O", title="Observed Temperature (°C)"),
            y=alt.Y("observed_density:O", title=f"Observed Density ({unit})", sort="descending"),
            color=alt.Color("density_15c:Q", title=f"Density at 15°C ({unit})", scale=alt.Scale(scheme="viridis")),
            tooltip=[
                alt.Tooltip("observed_density:Q", title="Observed density"),
                alt.Tooltip("temperature:Q", title="Temperature"),
                alt.Tooltip("density_15c:Q", title="Density at 15°C", format=".3f"),
            ],
        )
    )
