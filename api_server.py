# ========================
# api_server.py
# ========================

"""
FastAPI Server for the Wind Turbine Market Pipeline

Runs the pipeline as a background job and serves the resulting market share
tables as JSON for the charting frontend.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, BackgroundTasks, Query
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from src.pipeline.orchestrator import TurbineMarketPipeline
from src.pipeline.exceptions import PipelineError
from src.utils.config import Config
from src.utils.logging_setup import setup_logging

config = Config()
setup_logging(log_level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Wind Turbine Market API",
    description="Manufacturer market shares of the Canadian wind turbine fleet",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state for tracking jobs
job_status: Dict[str, Dict[str, Any]] = {}

JOB_NOT_FOUND_MSG = "Job not found"
JOB_NOT_COMPLETED_MSG = "Job not completed yet"
TABLE_KEYS = ('annual_shares', 'rankings', 'annual_totals', 'profile')


class PipelineJobManager:
    """Manages background pipeline jobs."""

    @staticmethod
    def run_pipeline(job_id: str, source: str, output_dir: str, top_k: int) -> None:
        """Run the pipeline for one job and record its outcome."""
        job = job_status[job_id]
        try:
            logger.info(f"Starting pipeline job {job_id}")
            job['status'] = 'processing'
            job['started_at'] = datetime.now().isoformat()

            job_config = Config({'top_k_manufacturers': top_k})
            pipeline = TurbineMarketPipeline(source=source, output_dir=output_dir, config=job_config)
            if not pipeline.validate_input():
                raise PipelineError(f"Input validation failed for {source}")

            results = pipeline.run()

            job['status'] = 'completed'
            job['completed_at'] = datetime.now().isoformat()
            job['results'] = results
            logger.info(f"Pipeline job {job_id} completed successfully")

        except Exception as e:
            logger.error(f"Pipeline job {job_id} failed: {e}", exc_info=True)
            job['status'] = 'failed'
            job['error'] = str(e)
            job['failed_at'] = datetime.now().isoformat()


def _completed_job(job_id: str) -> Dict[str, Any]:
    if job_id not in job_status:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)
    job = job_status[job_id]
    if job['status'] != 'completed':
        raise HTTPException(status_code=400, detail=JOB_NOT_COMPLETED_MSG)
    return job


def _resolve_source(source: Optional[str]) -> str:
    """Remote URLs pass through; local paths must lie inside RAW_DATA_DIR."""
    source = source or config.DATA_URL
    if source.lower().startswith(('http://', 'https://')):
        return source

    data_dir = Path(config.RAW_DATA_DIR).resolve()
    path = (data_dir / source).resolve()
    if data_dir not in path.parents:
        raise HTTPException(
            status_code=400,
            detail=f"Local sources must be inside the data directory {config.RAW_DATA_DIR}"
        )
    return str(path)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Wind Turbine Market API",
        "version": "1.0.0",
        "endpoints": {
            "run_pipeline": "/run-pipeline - Start a pipeline job",
            "status": "/status/{job_id} - Check job status",
            "jobs": "/jobs - List all jobs",
            "market_shares": "/market-shares/{job_id} - Annual manufacturer shares",
            "rankings": "/rankings/{job_id} - Manufacturer ranking",
            "annual_totals": "/annual-totals/{job_id} - Yearly and cumulative additions",
            "profile": "/profile/{job_id} - Descriptive statistics",
            "health": "/health - Health check",
            "api_docs": "/docs - API documentation"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "active_jobs": len([j for j in job_status.values() if j['status'] == 'processing'])
    }


@app.post("/run-pipeline")
async def run_pipeline(
    background_tasks: BackgroundTasks,
    source: Optional[str] = Query(None, description="http(s) URL, or path of a CSV inside the data directory"),
    top_k: int = Query(config.TOP_K_MANUFACTURERS, description="Manufacturers shown by name", ge=1, le=50)
):
    """
    Queue a pipeline run.

    Returns:
        dict: Job ID and status information
    """
    job_id = str(uuid.uuid4())
    output_dir = Path(config.DEFAULT_OUTPUT_DIR) / job_id
    source = _resolve_source(source)

    job_status[job_id] = {
        'job_id': job_id,
        'status': 'queued',
        'created_at': datetime.now().isoformat(),
        'source': source,
        'output_dir': str(output_dir),
        'top_k': top_k
    }

    background_tasks.add_task(PipelineJobManager.run_pipeline, job_id, source, str(output_dir), top_k)
    logger.info(f"Queued pipeline job {job_id} for {source}")

    return {
        "job_id": job_id,
        "status": "queued",
        "source": source,
        "message": "Pipeline processing started. Use /status/{job_id} to check progress"
    }


@app.get("/status/{job_id}")
async def get_job_status(job_id: str):
    """Get the status of a pipeline job, without the result tables."""
    if job_id not in job_status:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)

    job = {key: value for key, value in job_status[job_id].items() if key != 'results'}
    if job['status'] == 'completed':
        results = job_status[job_id]['results']
        job['summary'] = {
            key: value for key, value in results.items() if key not in TABLE_KEYS
        }
    return job


@app.get("/jobs")
async def list_jobs(
    status: Optional[str] = Query(None, description="Filter by status: queued, processing, completed, failed"),
    limit: int = Query(50, description="Maximum number of jobs to return", ge=1, le=100)
):
    """List pipeline jobs, newest first."""
    jobs = [
        {key: job[key] for key in ('job_id', 'status', 'created_at', 'source')}
        for job in job_status.values()
        if status is None or job['status'] == status
    ]
    jobs.sort(key=lambda job: job['created_at'], reverse=True)
    return {"total": len(jobs), "jobs": jobs[:limit]}


@app.get("/market-shares/{job_id}")
async def get_market_shares(
    job_id: str,
    year: Optional[int] = Query(None, description="Only rows for this commissioning year")
):
    """Annual manufacturer share rows of a completed job."""
    rows = _completed_job(job_id)['results']['annual_shares']
    if year is not None:
        rows = [row for row in rows if row['year'] == year]
    return {"job_id": job_id, "rows": rows}


@app.get("/rankings/{job_id}")
async def get_rankings(job_id: str):
    """Manufacturer ranking of a completed job."""
    return {"job_id": job_id, "rows": _completed_job(job_id)['results']['rankings']}


@app.get("/annual-totals/{job_id}")
async def get_annual_totals(job_id: str):
    """Yearly and cumulative fleet additions of a completed job."""
    return {"job_id": job_id, "rows": _completed_job(job_id)['results']['annual_totals']}


@app.get("/profile/{job_id}")
async def get_profile(job_id: str):
    """Descriptive statistics of a completed job."""
    profile = _completed_job(job_id)['results']['profile']
    if profile is None:
        raise HTTPException(status_code=404, detail="Profiling was disabled for this job")
    return {"job_id": job_id, "profile": profile}


def start_server(host: str = "0.0.0.0", port: int = config.API_PORT, reload: bool = False):
    """Start the FastAPI server."""
    logger.info(f"Starting Wind Turbine Market API server on {host}:{port}")
    uvicorn.run(
        "api_server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    start_server(reload=True)
