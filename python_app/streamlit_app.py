import asyncio
import html
import logging

import altair as alt
import pandas as pd
import streamlit as st

from resume_ranker.config import Settings
from resume_ranker.models.schemas import SORT_LABELS, IncomingFile, RankedCandidate
from resume_ranker.pipeline import RankingPipeline
from resume_ranker.views import EXPORT_FILE_NAME

# ---------- Setup ----------
st.set_page_config(page_title="AI Resume Ranker", layout="wide")

if "pipeline" not in st.session_state:
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    st.session_state["pipeline"] = RankingPipeline(settings)
    st.session_state["seen_uploads"] = set()

pipeline: RankingPipeline = st.session_state["pipeline"]
session = pipeline.session

FILTER_LABELS = {"all": "All candidates", "top_picks": "Top picks only"}


def _score_chart(c: RankedCandidate) -> alt.Chart:
    a = c.analysis
    chart_df = pd.DataFrame({
        "Dimension": list(SORT_LABELS.values()),
        "Score": [getattr(a, key) for key in SORT_LABELS],
    })
    return alt.Chart(chart_df).mark_bar().encode(
        x=alt.X("Score", scale=alt.Scale(domain=[0, 100])),
        y=alt.Y("Dimension", sort=None),
        tooltip=["Dimension", "Score"],
    ).properties(height=200)


def _highlighted_html(candidate_id: str) -> str:
    parts = []
    for seg in pipeline.highlighted_text(candidate_id):
        text = html.escape(seg.text)
        parts.append(f"<mark>{text}</mark>" if seg.highlighted else text)
    return "<div style='white-space: pre-wrap'>" + "".join(parts) + "</div>"


# ---------- UI ----------
st.title("AI Resume Ranker")

# Step 1: upload resumes
st.header("Step 1 — Upload resumes")
uploads = st.file_uploader("Drop resumes or browse (PDF/DOCX)", type=["pdf", "docx"], accept_multiple_files=True)
fresh = []
for f in uploads or []:
    key = getattr(f, "file_id", None) or f"{f.name}-{f.size}"
    if key not in st.session_state["seen_uploads"]:
        st.session_state["seen_uploads"].add(key)
        # Streamlit does not expose the browser's lastModified, so identity falls back to the name
        fresh.append(IncomingFile(file_name=f.name, data=f.getvalue(), media_type=f.type))
if fresh:
    with st.spinner(f"Reading {len(fresh)} file(s)…"):
        report = asyncio.run(pipeline.add_files(fresh))
    for name in report.skipped:
        st.caption(f"Skipped unsupported file: {name}")

if session.documents:
    st.caption(f"Uploaded {len(session.documents)} resume(s)")

# Step 2: job description
st.header("Step 2 — Paste the Job Description")
jd_input = st.text_area("Job Description", value=session.job_description, height=220,
                        placeholder="Paste the full Job Description here…")
pipeline.set_job_description(jd_input)

missing = pipeline.missing_requirements()
if st.button(f"Analyze {len(session.documents)} Resumes with AI", disabled=bool(missing), type="primary"):
    bar = st.progress(0.0, text=f"Analyzing… (0/{len(session.documents)})")

    def _on_progress(done: int, total: int) -> None:
        bar.progress(done / total, text=f"Analyzing… ({done}/{total})")

    asyncio.run(pipeline.analyze(on_progress=_on_progress))
    bar.empty()
elif missing and (session.documents or session.job_description.strip()):
    st.caption(" ".join(missing))

if session.last_error:
    c1, c2 = st.columns([10, 1])
    with c1:
        st.error(session.last_error)
    with c2:
        if st.button("✕", key="dismiss_error"):
            pipeline.dismiss_error()
            st.rerun()

# Step 3: results
if session.ranked:
    st.header("Ranked Results")
    st.caption(
        "Ranking is determined by an AI-powered holistic analysis of the candidate's skills, "
        "experience, and overall alignment with your job description."
    )
    c1, c2 = st.columns(2)
    with c1:
        sort_key = st.selectbox(
            "Sort by", list(SORT_LABELS), format_func=SORT_LABELS.get,
            index=list(SORT_LABELS).index(session.sort_key),
        )
        pipeline.set_sort_key(sort_key)
    with c2:
        filter_mode = st.radio(
            "Show", list(FILTER_LABELS), format_func=FILTER_LABELS.get,
            index=list(FILTER_LABELS).index(session.filter_mode), horizontal=True,
        )
        pipeline.set_filter(filter_mode)

    shown = pipeline.displayed()
    st.download_button("Export CSV", pipeline.export_csv().encode("utf-8"), EXPORT_FILE_NAME, "text/csv")
    if not shown:
        st.info("No candidates match the current filter.")

    for rank, c in enumerate(shown, 1):
        a = c.analysis
        star = "★ " if pipeline.is_top_pick(c.id) else ""
        label = f"#{rank} {star}{a.candidate_name} — {getattr(a, session.sort_key):g}% · {c.document.file_name}"
        with st.expander(label):
            st.markdown(f"**{a.current_title}** · {a.location} · {a.years_of_experience:g} yrs")
            if st.button("Remove from top picks" if star else "Mark as top pick", key=f"pick_{c.id}"):
                pipeline.toggle_top_pick(c.id)
                st.rerun()
            st.markdown("**AI Summary**")
            st.write(a.summary)
            st.markdown(f"*{a.ranking_justification}*")
            st.altair_chart(_score_chart(c), use_container_width=True)

            ex = a.score_explanations
            st.dataframe(pd.DataFrame({
                "Dimension": list(SORT_LABELS.values()),
                "Score": [getattr(a, key) for key in SORT_LABELS],
                "Why": [ex.overall, ex.skill_match, ex.experience_relevance,
                        ex.education_fit, ex.soft_skills, ex.technical_skills],
            }), use_container_width=True, hide_index=True)

            s1, s2 = st.columns(2)
            with s1:
                st.markdown("**Strengths**")
                for s in a.strengths:
                    st.markdown(f"- {s}")
            with s2:
                st.markdown("**Gaps**")
                for g in a.gaps:
                    st.markdown(f"- {g}")
            st.markdown("**Top Skills:** " + ", ".join(a.top_skills))
            if a.standout_skills:
                st.markdown("**Standout Skills** (not required by the job description)")
                for s in a.standout_skills:
                    st.markdown(f"- {s}")
            st.markdown("**Suggested Interview Questions**")
            for q in a.suggested_questions:
                st.markdown(f"- {q}")

            file_name, media_type, data = pipeline.original_file(c.id)
            st.download_button("Download original file", data, file_name,
                               media_type or "application/octet-stream", key=f"dl_{c.id}")
            if st.checkbox("View full resume with highlights", value=False, key=f"hl_{c.id}"):
                st.markdown(_highlighted_html(c.id), unsafe_allow_html=True)
