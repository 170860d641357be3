"""
Resume endpoints.

Upload, list, edit, promote and delete a job seeker's resumes. Every write
that can change which resume is primary goes through PrimaryResumeManager,
which runs in its own transaction; the ownership checks before it use
short-lived sessions so no request-scoped transaction is held across it.

Contains PII - writes are audit logged.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.concurrency import run_in_threadpool

from database.engine import get_db, get_session_factory
from database.models.resumes import ExperienceLevel, Resume
from core.config import settings
from core.exceptions import ResumeNotFoundError, StorageError, UserNotFoundError
from core.security import AuditAction, ResourceType, SessionToken, log_audit_event
from core.storage.local import RESUME_MIME_TYPES, LocalStorage, build_resume_filename
from api.dependencies import get_resume_manager, get_storage, require_employee
from api.schemas.common import MessageResponse
from api.schemas.resumes import ResumeResponse, ResumeUpdate
from api.services import resumes as resume_service
from api.services.resumes import PrimaryResumeManager
from api.services.users import get_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resumes", tags=["resumes"])


async def load_owned_resume(
    session_factory: async_sessionmaker[AsyncSession],
    resume_id: str,
    user_id: str,
) -> Resume:
    """
    Fetch a resume owned by the caller.

    Raises:
        ResumeNotFoundError: If it does not exist or belongs to someone else
    """
    async with session_factory() as db:
        resume = await resume_service.get_resume(db, resume_id)
    if resume is None or resume.user_id != user_id:
        raise ResumeNotFoundError(resume_id)
    return resume


@router.get(
    "",
    response_model=list[ResumeResponse],
    summary="List Resumes",
    description="The caller's resumes, primary first, then newest first.",
)
async def list_resumes(
    session: SessionToken = Depends(require_employee),
    db: AsyncSession = Depends(get_db),
):
    return await resume_service.list_resumes(db, session.user_id)


@router.post(
    "",
    response_model=ResumeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Resume",
    description="Upload a PDF, DOC, DOCX or TXT resume (max 5 MB). The first resume becomes primary.",
)
async def upload_resume(
    request: Request,
    file: UploadFile = File(..., description="Resume file"),
    title: str = Form(..., min_length=1, max_length=200),
    experience_level: ExperienceLevel = Form(...),
    description: Optional[str] = Form(None),
    session: SessionToken = Depends(require_employee),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    manager: PrimaryResumeManager = Depends(get_resume_manager),
    storage: LocalStorage = Depends(get_storage),
):
    extension = RESUME_MIME_TYPES.get(file.content_type or "")
    if extension is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Only PDF, DOC, DOCX, and TXT files are allowed",
        )

    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )
    if len(content) > settings.max_resume_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size must be at most {settings.max_resume_size // (1024 * 1024)}MB",
        )

    async with session_factory() as db:
        user = await get_user(db, session.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    filename = build_resume_filename(user.name, experience_level.value, extension)
    await run_in_threadpool(storage.save, content, filename)

    try:
        resume = await manager.create(
            session.user_id,
            {
                "filename": filename,
                "original_name": file.filename or filename,
                "url": f"{settings.upload_url_prefix}/{filename}",
                "file_size": len(content),
                "mime_type": file.content_type,
                "title": title.strip(),
                "description": description.strip() if description else None,
                "experience_level": experience_level,
            },
        )
    except (StorageError, UserNotFoundError):
        # Don't leave an orphaned file behind
        await run_in_threadpool(storage.delete, filename)
        raise

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.RESUME,
        resource_id=resume.id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
        details={"original_name": resume.original_name, "is_primary": resume.is_primary},
    )

    return resume


@router.patch(
    "/{resume_id}",
    response_model=ResumeResponse,
    summary="Update Resume",
    description="Edit title, description, experience level or active flag.",
)
async def update_resume(
    request: Request,
    data: ResumeUpdate,
    resume_id: str = Path(..., description="Resume ID"),
    session: SessionToken = Depends(require_employee),
    db: AsyncSession = Depends(get_db),
):
    resume = await resume_service.get_resume(db, resume_id)
    if resume is None or resume.user_id != session.user_id:
        raise ResumeNotFoundError(resume_id)

    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    if "title" in updates:
        updates["title"] = updates["title"].strip()

    resume = await resume_service.update_resume(db, resume_id, updates)

    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.RESUME,
        resource_id=resume_id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
        details={"fields": sorted(updates)},
    )

    return resume


@router.put(
    "/{resume_id}/primary",
    response_model=ResumeResponse,
    summary="Set Primary Resume",
    description="Make this resume primary; the previous primary resume is demoted.",
)
async def set_primary_resume(
    request: Request,
    resume_id: str = Path(..., description="Resume ID"),
    session: SessionToken = Depends(require_employee),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    manager: PrimaryResumeManager = Depends(get_resume_manager),
):
    await load_owned_resume(session_factory, resume_id, session.user_id)

    await manager.promote(resume_id)

    log_audit_event(
        action=AuditAction.SET_PRIMARY,
        resource_type=ResourceType.RESUME,
        resource_id=resume_id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
    )

    return await load_owned_resume(session_factory, resume_id, session.user_id)


@router.delete(
    "/{resume_id}",
    response_model=MessageResponse,
    summary="Delete Resume",
    description="Delete a resume and its file. Deleting the primary resume promotes the newest remaining one.",
)
async def delete_resume(
    request: Request,
    resume_id: str = Path(..., description="Resume ID"),
    session: SessionToken = Depends(require_employee),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    manager: PrimaryResumeManager = Depends(get_resume_manager),
    storage: LocalStorage = Depends(get_storage),
):
    await load_owned_resume(session_factory, resume_id, session.user_id)

    deleted = await manager.delete(resume_id)

    removed = await run_in_threadpool(storage.delete, deleted.filename)
    if not removed:
        logger.warning(f"Resume file {deleted.filename} was already missing")

    log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.RESUME,
        resource_id=resume_id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
        details={"was_primary": deleted.is_primary},
    )

    return MessageResponse(message="Resume deleted successfully")
