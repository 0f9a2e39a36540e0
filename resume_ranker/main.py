import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, File, Form, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .config import Settings
from .models.schemas import SORT_KEYS, IncomingFile
from .pipeline import RankingPipeline
from .services import AnalysisService
from .views import EXPORT_FILE_NAME


class JobDescriptionBody(BaseModel):
    text: str


def _candidate_payload(pipeline: RankingPipeline) -> List[Dict[str, Any]]:
    out = []
    for rank, c in enumerate(pipeline.displayed(), 1):
        out.append({
            "rank": rank,
            "id": c.id,
            "file_name": c.document.file_name,
            "top_pick": pipeline.is_top_pick(c.id),
            "analysis": c.analysis.model_dump(by_alias=True),
        })
    return out


def _status_payload(pipeline: RankingPipeline) -> Dict[str, Any]:
    s = pipeline.session
    return {
        "documents": len(s.documents),
        "ranked": len(s.ranked),
        "is_running": s.is_running,
        "completed": s.completed,
        "last_error": s.last_error,
        "can_analyze": pipeline.can_analyze(),
        "missing": pipeline.missing_requirements(),
    }


def create_app(settings: Optional[Settings] = None, service: Optional[AnalysisService] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="AI Resume Ranker API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    pipeline = RankingPipeline(settings, service=service)
    app.state.pipeline = pipeline

    @app.post("/resumes")
    async def upload_resumes(
        resumes: List[UploadFile] = File(...),
        last_modified: List[int] = Form([]),
    ) -> Dict[str, Any]:
        incoming = []
        for i, f in enumerate(resumes):
            content = await f.read()
            incoming.append(IncomingFile(
                file_name=f.filename or f"upload-{i}",
                data=content,
                last_modified=last_modified[i] if i < len(last_modified) else 0,
                media_type=f.content_type,
            ))
        report = await pipeline.add_files(incoming)
        return report.to_dict()

    @app.get("/resumes")
    def list_resumes() -> Dict[str, Any]:
        return {
            "resumes": [
                {"id": d.id, "file_name": d.file_name, "chars": len(d.content)}
                for d in pipeline.session.documents
            ]
        }

    @app.delete("/resumes/{doc_id}")
    def delete_resume(doc_id: str):
        if not pipeline.remove_document(doc_id):
            return JSONResponse(status_code=404, content={"error": "not found"})
        return {"removed": doc_id}

    @app.get("/resumes/{doc_id}/download")
    def download_resume(doc_id: str):
        try:
            file_name, media_type, data = pipeline.original_file(doc_id)
        except KeyError:
            return JSONResponse(status_code=404, content={"error": "not found"})
        return Response(
            content=data,
            media_type=media_type or "application/octet-stream",
            headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
        )

    @app.put("/job-description")
    def set_job_description(body: JobDescriptionBody) -> Dict[str, Any]:
        pipeline.set_job_description(body.text)
        return {"chars": len(body.text)}

    @app.post("/analyze")
    async def analyze():
        missing = pipeline.missing_requirements()
        if missing:
            return JSONResponse(status_code=400, content={"error": " ".join(missing), "missing": missing})
        await pipeline.analyze()
        if pipeline.session.last_error:
            return JSONResponse(status_code=502, content={"error": pipeline.session.last_error})
        return {"results": _candidate_payload(pipeline), "completed": pipeline.session.completed}

    @app.get("/candidates")
    def list_candidates(
        sort: Optional[str] = Query(None),
        filter_mode: Optional[str] = Query(None, alias="filter", pattern="^(all|top_picks)$"),
    ):
        if sort is not None:
            if sort not in SORT_KEYS:
                return JSONResponse(status_code=400, content={"error": f"invalid sort key: {sort}"})
            pipeline.set_sort_key(sort)
        if filter_mode is not None:
            pipeline.set_filter(filter_mode)
        return {
            "sort": pipeline.session.sort_key,
            "filter": pipeline.session.filter_mode,
            "results": _candidate_payload(pipeline),
        }

    @app.post("/candidates/{candidate_id}/top-pick")
    def toggle_top_pick(candidate_id: str):
        if not any(c.id == candidate_id for c in pipeline.session.ranked):
            return JSONResponse(status_code=404, content={"error": "not found"})
        return {"id": candidate_id, "top_pick": pipeline.toggle_top_pick(candidate_id)}

    @app.get("/candidates/{candidate_id}/highlights")
    def candidate_highlights(candidate_id: str):
        try:
            segments = pipeline.highlighted_text(candidate_id)
        except KeyError:
            return JSONResponse(status_code=404, content={"error": "not found"})
        return {"segments": [{"text": s.text, "highlighted": s.highlighted} for s in segments]}

    @app.get("/export.csv")
    def export():
        return Response(
            content=pipeline.export_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILE_NAME}"'},
        )

    @app.get("/status")
    def status() -> Dict[str, Any]:
        return _status_payload(pipeline)

    @app.delete("/error")
    def dismiss_error() -> Dict[str, Any]:
        pipeline.dismiss_error()
        return _status_payload(pipeline)

    return app


app = create_app()
