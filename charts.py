"""
Plotly figures and table frames for the tracker page.
"""
from __future__ import annotations

from typing import Optional

import pandas as pd
import plotly.graph_objects as go

from trajectory import TrajectorySeries, UserProfile

LOG_COLUMNS = ["Date", "Weight (kg)", "Change", "Progress (%)"]


def make_trajectory_chart(series: TrajectorySeries, goal_weight: Optional[float] = None) -> go.Figure:
    """
    Target line vs logged weights.

    Days without a log are NaN in the frame, so plotly leaves them out instead
    of drawing a zero; connectgaps joins the logged points across them.
    """
    fig = go.Figure()
    df = series.to_frame()
    if df.empty:
        fig.update_layout(title="Progress", template="plotly_white")
        return fig

    fig.add_trace(go.Scatter(
        x=df["Date"], y=df["Target"], mode="lines", name="Target",
        line=dict(dash="dash", color="#82ca9d"),
        hovertemplate="%{x|%Y-%m-%d}: %{y:.1f} kg",
    ))
    fig.add_trace(go.Scatter(
        x=df["Date"], y=df["Actual"], mode="lines+markers", name="Weight (kg)",
        connectgaps=True, line=dict(color="#8884d8"),
        hovertemplate="%{x|%Y-%m-%d}: %{y:.1f} kg",
    ))
    if goal_weight is not None:
        fig.add_hline(y=goal_weight, line_dash="dot", line_color="#999999", annotation_text="Goal")

    fig.update_layout(
        title=f"Progress vs Target ({series.granularity})",
        xaxis_title="Date",
        yaxis_title="Weight (kg)",
        hovermode="x unified",
        template="plotly_white",
    )
    return fig


def make_change_chart(profile: UserProfile) -> go.Figure:
    fig = go.Figure()
    if not profile.logs:
        fig.update_layout(title="Change per Entry", template="plotly_white")
        return fig

    x = [e.date for e in profile.logs]
    y = [e.change for e in profile.logs]
    colors = ["#2ca02c" if v < 0 else "#d62728" for v in y]  # green loss, red gain
    fig.add_trace(go.Bar(x=x, y=y, marker_color=colors, name="Change"))
    fig.update_layout(
        title="Change since Previous Entry",
        xaxis_title="Date",
        yaxis_title="Δ Weight (kg)",
        template="plotly_white",
    )
    return fig


def logs_frame(profile: UserProfile) -> pd.DataFrame:
    """History table rows, oldest first."""
    rows = [
        {"Date": e.date, "Weight (kg)": e.weight, "Change": e.change, "Progress (%)": e.progress}
        for e in profile.logs
    ]
    return pd.DataFrame(rows, columns=LOG_COLUMNS)
