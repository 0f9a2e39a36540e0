import csv
import re
from typing import AbstractSet, Iterable, List, NamedTuple, Set, Union

import pandas as pd

from .models.schemas import FILTER_MODES, SORT_KEYS, FilterMode, RankedCandidate, SortKey

EXPORT_FILE_NAME = "resume_ranking.csv"

EXPORT_COLUMNS = [
    "Rank",
    "Name",
    "Overall Score",
    "Skill Match",
    "Experience Relevance",
    "Education Fit",
    "Soft Skills",
    "Technical Skills",
    "Title",
    "Location",
    "Years of Experience",
    "Summary",
    "Top Skills",
    "Strengths",
    "Gaps",
    "File Name",
    "Top Pick",
]

SKILL_SEPARATOR = ", "
NARRATIVE_SEPARATOR = "; "

_TRAILING_PUNCTUATION = re.compile(r'[.,;:"()?!\[\]{}]+$')


class HighlightSegment(NamedTuple):
    text: str
    highlighted: bool


def _csv_number(value: float) -> Union[int, float]:
    return int(value) if value == int(value) else value


def sort_candidates(candidates: Iterable[RankedCandidate], key: SortKey) -> List[RankedCandidate]:
    """Descending by the given score field; equal scores keep their input order."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key}")
    # sorted() is stable, and reverse=True preserves the order of equal elements
    return sorted(candidates, key=lambda c: c.score(key), reverse=True)


def filter_candidates(
    candidates: Iterable[RankedCandidate], mode: FilterMode, top_picks: AbstractSet[str]
) -> List[RankedCandidate]:
    if mode not in FILTER_MODES:
        raise ValueError(f"Unknown filter mode: {mode}")
    if mode == "top_picks":
        return [c for c in candidates if c.id in top_picks]
    return list(candidates)


def export_csv(candidates: Iterable[RankedCandidate], top_picks: AbstractSet[str]) -> str:
    """Serialize the displayed candidates, one row each, in display order."""
    rows = []
    for rank, c in enumerate(candidates, 1):
        a = c.analysis
        rows.append({
            "Rank": rank,
            "Name": a.candidate_name,
            "Overall Score": _csv_number(a.overall_score),
            "Skill Match": _csv_number(a.skill_match_score),
            "Experience Relevance": _csv_number(a.experience_relevance_score),
            "Education Fit": _csv_number(a.education_fit_score),
            "Soft Skills": _csv_number(a.soft_skills_score),
            "Technical Skills": _csv_number(a.technical_skills_score),
            "Title": a.current_title,
            "Location": a.location,
            "Years of Experience": _csv_number(a.years_of_experience),
            "Summary": a.summary,
            "Top Skills": SKILL_SEPARATOR.join(a.top_skills),
            "Strengths": NARRATIVE_SEPARATOR.join(a.strengths),
            "Gaps": NARRATIVE_SEPARATOR.join(a.gaps),
            "File Name": c.document.file_name,
            "Top Pick": "Yes" if c.id in top_picks else "No",
        })
    # object dtype keeps whole numbers from being upcast when a column mixes 80 and 72.5
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS, dtype=object)
    # Text cells are always quoted; embedded quotes are doubled
    return df.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, doublequote=True, lineterminator="\n")


def job_keywords(job_description: str) -> Set[str]:
    return {t for t in job_description.lower().split() if len(t) > 3}


def highlight_segments(text: str, job_description: str) -> List[HighlightSegment]:
    """Split text into whitespace-preserving segments, marking job-relevant words."""
    keywords = job_keywords(job_description)
    segments: List[HighlightSegment] = []
    for word in re.split(r"(\s+)", text):
        if not word:
            continue
        token = _TRAILING_PUNCTUATION.sub("", word.lower())
        segments.append(HighlightSegment(word, token in keywords))
    return segments
