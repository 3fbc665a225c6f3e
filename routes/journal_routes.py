"""
Journal endpoints: entries, comments and likes
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request

from models import CommentCreate, JournalEntryCreate, JournalEntryUpdate, LikeToggle
from repositories import RepositoryError

from .dependencies import error_response, get_repos, repository_error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/journal", tags=["journal"])


@router.get("/entries")
async def list_entries(request: Request, limit: int = 50, offset: int = 0, search: Optional[str] = None):
    repos = get_repos(request)
    if not 1 <= limit <= 1000 or offset < 0:
        return error_response(400, "limit must be 1..1000 and offset non-negative")
    try:
        if search:
            entries = await repos.journal.search_entries(search, limit=limit)
            return {"data": entries, "count": len(entries)}
        entries = await repos.journal.list_entries(limit=limit, offset=offset)
        return {"data": entries, "count": await repos.journal.count_entries()}
    except RepositoryError as e:
        return repository_error_response(e)


@router.post("/entries", status_code=201)
async def create_entry(request: Request, entry: JournalEntryCreate):
    repos = get_repos(request)
    try:
        created = await repos.journal.create_entry(entry.model_dump(exclude_none=True))
    except RepositoryError as e:
        return repository_error_response(e)
    logger.info(f"Created journal entry {created['id']}: {created['title']}")
    return {"data": created}


@router.get("/entries/{entry_id}")
async def get_entry(request: Request, entry_id: str):
    repos = get_repos(request)
    try:
        entry = await repos.journal.get_entry(entry_id)
    except RepositoryError as e:
        return repository_error_response(e)
    if entry is None:
        return error_response(404, f"Journal entry {entry_id} not found")
    return {"data": entry}


@router.patch("/entries/{entry_id}")
async def update_entry(request: Request, entry_id: str, changes: JournalEntryUpdate):
    repos = get_repos(request)
    data = changes.model_dump(exclude_unset=True)
    if not data:
        return error_response(400, "No fields to update")
    try:
        entry = await repos.journal.update_entry(entry_id, data)
    except RepositoryError as e:
        return repository_error_response(e)
    if entry is None:
        return error_response(404, f"Journal entry {entry_id} not found")
    return {"data": entry}


@router.delete("/entries/{entry_id}")
async def delete_entry(request: Request, entry_id: str):
    repos = get_repos(request)
    try:
        deleted = await repos.journal.delete_entry(entry_id)
    except RepositoryError as e:
        return repository_error_response(e)
    if not deleted:
        return error_response(404, f"Journal entry {entry_id} not found")
    return {"message": "Journal entry deleted", "id": entry_id}


@router.get("/entries/{entry_id}/stats")
async def get_entry_stats(request: Request, entry_id: str):
    repos = get_repos(request)
    try:
        stats = await repos.comments.get_entry_stats(entry_id)
    except RepositoryError as e:
        return repository_error_response(e)
    if stats is None:
        return error_response(404, f"Journal entry {entry_id} not found")
    return {"data": stats}


@router.get("/entries/{entry_id}/comments")
async def get_comments(request: Request, entry_id: str):
    repos = get_repos(request)
    try:
        comments = await repos.comments.get_comments(entry_id)
    except RepositoryError as e:
        return repository_error_response(e)
    return {"data": comments, "count": len(comments)}


@router.post("/entries/{entry_id}/comments", status_code=201)
async def add_comment(request: Request, entry_id: str, comment: CommentCreate):
    repos = get_repos(request)
    try:
        created = await repos.comments.add_comment(entry_id, comment.author_name, comment.comment_text)
    except RepositoryError as e:
        return repository_error_response(e)
    return {"data": created}


@router.post("/entries/{entry_id}/likes")
async def toggle_like(request: Request, entry_id: str, like: LikeToggle):
    repos = get_repos(request)
    try:
        return await repos.comments.toggle_like(entry_id, like.user_id)
    except RepositoryError as e:
        return repository_error_response(e)


@router.delete("/comments/{comment_id}")
async def delete_comment(request: Request, comment_id: str):
    repos = get_repos(request)
    try:
        deleted = await repos.comments.delete_comment(comment_id)
    except RepositoryError as e:
        return repository_error_response(e)
    if not deleted:
        return error_response(404, f"Comment {comment_id} not found")
    return {"message": "Comment deleted", "id": comment_id}
