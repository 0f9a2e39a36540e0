"""Ranking pipeline: the single owner of session state.

Every mutation of the session goes through a ``RankingPipeline`` method and
happens on the event loop, so no locking is needed.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .config import Settings
from .errors import AnalysisFailed, ExtractionFailed, RankerError, UnsupportedFormat
from .models.schemas import (
    FILTER_MODES,
    SORT_KEYS,
    AnalysisRecord,
    ExtractionReport,
    FilterMode,
    IncomingFile,
    RankedCandidate,
    SortKey,
    UploadedDocument,
)
from .services import AnalysisService, get_analysis_service
from .utils import extract_document, is_supported
from .views import HighlightSegment, export_csv, filter_candidates, highlight_segments, sort_candidates

ProgressCallback = Callable[[int, int], None]


@dataclass
class RankingSession:
    job_description: str = ""
    documents: List[UploadedDocument] = field(default_factory=list)
    ranked: List[RankedCandidate] = field(default_factory=list)
    sort_key: SortKey = "overall_score"
    filter_mode: FilterMode = "all"
    top_picks: Set[str] = field(default_factory=set)
    is_running: bool = False
    completed: int = 0
    last_error: Optional[str] = None


class RankingPipeline:
    def __init__(self, settings: Settings, service: Optional[AnalysisService] = None):
        self.settings = settings
        self._service = service
        self.session = RankingSession()

    # ---------- Inputs ----------
    def set_job_description(self, text: str) -> None:
        # Existing results are not re-scored
        self.session.job_description = text or ""

    async def add_files(self, files: Sequence[IncomingFile]) -> ExtractionReport:
        """Extract every supported file; unsupported ones are skipped, failures collected."""
        report = ExtractionReport()
        accepted: List[IncomingFile] = []
        for f in files:
            if is_supported(f.file_name, f.media_type):
                accepted.append(f)
            else:
                logging.warning(f"Unsupported file type: {f.file_name}")
                report.skipped.append(f.file_name)

        outcomes = await asyncio.gather(
            *(extract_document(f) for f in accepted), return_exceptions=True
        )
        new_docs: Dict[str, UploadedDocument] = {}
        for f, outcome in zip(accepted, outcomes):
            if isinstance(outcome, UploadedDocument):
                new_docs.pop(outcome.id, None)
                new_docs[outcome.id] = outcome
            elif isinstance(outcome, UnsupportedFormat):
                report.skipped.append(f.file_name)
            elif isinstance(outcome, ExtractionFailed):
                logging.warning(str(outcome))
                report.failed[f.file_name] = str(outcome)
            else:
                raise outcome

        report.added = list(new_docs.values())
        self.session.documents = [
            d for d in self.session.documents if d.id not in new_docs
        ] + report.added
        if report.failed:
            self.session.last_error = " ".join(report.failed.values())
        logging.info(
            f"Upload batch: {len(report.added)} added, {len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        return report

    def remove_document(self, doc_id: str) -> bool:
        before = len(self.session.documents)
        self.session.documents = [d for d in self.session.documents if d.id != doc_id]
        self.session.top_picks.discard(doc_id)
        return len(self.session.documents) != before

    def get_document(self, doc_id: str) -> Optional[UploadedDocument]:
        for d in self.session.documents:
            if d.id == doc_id:
                return d
        for c in self.session.ranked:
            if c.id == doc_id:
                return c.document
        return None

    # ---------- Analysis run ----------
    def missing_requirements(self) -> List[str]:
        missing = []
        if not self.session.documents:
            missing.append("Upload at least one PDF or DOCX resume.")
        if not self.session.job_description.strip():
            missing.append("Paste the job description.")
        if self._service is None and not self.settings.has_credentials:
            missing.append(f"API key for provider '{self.settings.provider}' is not configured.")
        if self.session.is_running:
            missing.append("An analysis run is already in progress.")
        return missing

    def can_analyze(self) -> bool:
        return not self.missing_requirements()

    def _get_service(self) -> AnalysisService:
        if self._service is None:
            self._service = get_analysis_service(self.settings)
        return self._service

    async def _analyze_one(
        self,
        service: AnalysisService,
        job_description: str,
        doc: UploadedDocument,
        total: int,
        on_progress: Optional[ProgressCallback],
    ) -> RankedCandidate:
        try:
            record: AnalysisRecord = await asyncio.wait_for(
                service.analyze_resume(job_description, doc.content),
                timeout=self.settings.analysis_timeout,
            )
        except asyncio.TimeoutError as e:
            raise AnalysisFailed(
                f"Analysis of {doc.file_name} timed out after {self.settings.analysis_timeout:g}s"
            ) from e
        self.session.completed += 1
        if on_progress:
            on_progress(self.session.completed, total)
        return RankedCandidate(document=doc, analysis=record)

    async def analyze(self, on_progress: Optional[ProgressCallback] = None) -> List[RankedCandidate]:
        """Run one batch over every uploaded document.

        All-or-nothing: the first failing call cancels the rest and leaves
        the ranked set empty, with the error recorded on the session.
        """
        if not self.can_analyze():
            return []
        session = self.session
        docs = list(session.documents)
        job_description = session.job_description

        session.is_running = True
        session.ranked = []
        session.last_error = None
        session.completed = 0
        logging.info(f"Starting analysis of {len(docs)} resume(s)")
        tasks: List[asyncio.Task] = []
        try:
            service = self._get_service()
            tasks = [
                asyncio.ensure_future(self._analyze_one(service, job_description, d, len(docs), on_progress))
                for d in docs
            ]
            results = await asyncio.gather(*tasks)
        except Exception as e:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            error = e
            if not isinstance(e, RankerError):
                logging.exception("Unexpected error from the analysis service")
                error = AnalysisFailed(str(e) or type(e).__name__)
            logging.warning(f"Analysis run aborted: {error}")
            session.ranked = []
            session.completed = 0
            session.last_error = f"An AI analysis error occurred: {error}"
            return []
        finally:
            session.is_running = False

        session.ranked = list(results)
        logging.info(f"Analysis finished: {len(results)} candidate(s) ranked")
        return session.ranked

    # ---------- Views ----------
    def set_sort_key(self, key: SortKey) -> None:
        if key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {key}")
        self.session.sort_key = key

    def set_filter(self, mode: FilterMode) -> None:
        if mode not in FILTER_MODES:
            raise ValueError(f"Unknown filter mode: {mode}")
        self.session.filter_mode = mode

    def toggle_top_pick(self, candidate_id: str) -> bool:
        """Flip top-pick membership; returns the new state."""
        picks = self.session.top_picks
        if candidate_id in picks:
            picks.discard(candidate_id)
            return False
        picks.add(candidate_id)
        return True

    def is_top_pick(self, candidate_id: str) -> bool:
        return candidate_id in self.session.top_picks

    def displayed(self) -> List[RankedCandidate]:
        s = self.session
        ordered = sort_candidates(s.ranked, s.sort_key)
        return filter_candidates(ordered, s.filter_mode, s.top_picks)

    def export_csv(self) -> str:
        return export_csv(self.displayed(), self.session.top_picks)

    def highlighted_text(self, candidate_id: str) -> List[HighlightSegment]:
        doc = self.get_document(candidate_id)
        if doc is None:
            raise KeyError(candidate_id)
        return highlight_segments(doc.content, self.session.job_description)

    def original_file(self, doc_id: str) -> Tuple[str, Optional[str], bytes]:
        doc = self.get_document(doc_id)
        if doc is None:
            raise KeyError(doc_id)
        return doc.file_name, doc.media_type, doc.data

    def dismiss_error(self) -> None:
        self.session.last_error = None
