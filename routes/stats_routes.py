"""
Adventure stats and milestone endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request

from models import MilestoneProgressUpdate, StatIncrement, StatUpdate
from repositories import RepositoryError

from .dependencies import error_response, get_repos, repository_error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats")
async def get_stats(request: Request, primary: bool = False):
    repos = get_repos(request)
    try:
        if primary:
            return {"data": await repos.stats.get_primary_stats()}
        return {"data": await repos.stats.get_summary()}
    except RepositoryError as e:
        return repository_error_response(e)


@router.put("/stats/{stat_type}")
async def set_stat(request: Request, stat_type: str, body: StatUpdate):
    repos = get_repos(request)
    try:
        await repos.stats.set_stat(stat_type, body.value)
    except RepositoryError as e:
        return repository_error_response(e)
    return {"statType": stat_type, "value": body.value}


@router.post("/stats/{stat_type}/increment")
async def increment_stat(request: Request, stat_type: str, body: Optional[StatIncrement] = None):
    repos = get_repos(request)
    increment = body.increment if body else 1
    try:
        value = await repos.stats.increment_stat(stat_type, increment)
    except RepositoryError as e:
        return repository_error_response(e)
    logger.info(f"Stat {stat_type} incremented by {increment} to {value}")
    return {"statType": stat_type, "value": value}


@router.get("/milestones")
async def get_milestones(request: Request, category_id: Optional[str] = None):
    repos = get_repos(request)
    try:
        return {
            "categories": await repos.milestones.get_categories(),
            "milestones": await repos.milestones.get_milestones(category_id),
        }
    except RepositoryError as e:
        return repository_error_response(e)


@router.get("/milestones/leaderboard")
async def get_leaderboard(request: Request):
    repos = get_repos(request)
    try:
        return {"data": await repos.milestones.get_leaderboard()}
    except RepositoryError as e:
        return repository_error_response(e)


@router.post("/milestones/progress")
async def update_progress(request: Request, body: MilestoneProgressUpdate):
    repos = get_repos(request)
    try:
        progress = await repos.milestones.update_progress(body.user_id, body.milestone_id, body.increment)
    except RepositoryError as e:
        return repository_error_response(e)
    if progress is None:
        return error_response(404, f"Milestone {body.milestone_id} not found")
    return {"data": progress}
