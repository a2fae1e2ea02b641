"""
Cron API Routes

Entry points for an external scheduler. All require
``Authorization: Bearer <CRON_SECRET>``.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.auth.service import verify_cron_secret
from api.models.user import JobResponse
from inbox_actions.jobs.cleanup import run_cleanup_actions_job, run_cleanup_job
from inbox_actions.jobs.count_new_emails import run_count_new_emails_job
from inbox_actions.jobs.daily_sync import JobResult, run_daily_sync_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)])


def _job_response(result: JobResult) -> JSONResponse:
    body = JobResponse(**result.to_dict())
    return JSONResponse(status_code=200 if result.success else 500, content=body.model_dump())


@router.get("/daily-sync", response_model=JobResponse)
async def daily_sync():
    logger.info("Daily sync triggered by cron")
    return _job_response(await run_daily_sync_job())


@router.get("/cleanup", response_model=JobResponse)
async def cleanup():
    logger.info("Cleanup triggered by cron")
    return _job_response(await run_cleanup_job())


@router.get("/cleanup-actions", response_model=JobResponse)
async def cleanup_actions():
    logger.warning("Action cleanup triggered by cron")
    return _job_response(await run_cleanup_actions_job())


@router.get("/count-new-emails", response_model=JobResponse)
async def count_new_emails():
    return _job_response(await run_count_new_emails_job())
