from pathlib import Path
import sys

import streamlit as st

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.config import load_settings
from backend.app.db import list_results
from backend.app.stats import build_stats
from game.session_metrics import task_title

st.set_page_config(page_title="Mindplay Results", layout="wide")
settings = load_settings()

st.title("Mindplay Results")
st.caption("Scores, accuracy and reaction time per cognitive task")

stats = build_stats(Path(settings.db_path))

if not stats["total_results"]:
    st.warning("No results stored yet.")
    st.stop()

col1, col2 = st.columns(2)
col1.metric("Students", stats["total_users"])
col2.metric("Results", stats["total_results"])

st.subheader("Per task")
game_rows = [dict(row, task=task_title(row["game_id"])) for row in stats["games"]]
st.dataframe(game_rows, use_container_width=True, hide_index=True)

if stats["daily"]:
    st.subheader("Results per day")
    st.bar_chart({row["date"]: row["count"] for row in stats["daily"]})

st.subheader("Latest results")
col1, col2, col3 = st.columns([1, 1, 2])
with col1:
    limit = st.number_input("Rows", min_value=10, max_value=500, value=100, step=10)
with col2:
    game_options = ["all"] + [row["game_id"] for row in stats["games"]]
    game_id = st.selectbox("Task", game_options)
with col3:
    user_id = st.text_input("User", value="", placeholder="user_id")

rows = list_results(
    Path(settings.db_path),
    user_id=user_id.strip() or None,
    game_id=None if game_id == "all" else game_id,
    limit=int(limit),
)
if not rows:
    st.info("No results match the filter.")
    st.stop()

table = [{k: v for k, v in row.items() if k != "details"} for row in rows]
st.dataframe(table, use_container_width=True, hide_index=True)
st.caption(f"Data source: {settings.db_path}")
