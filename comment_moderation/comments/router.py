"""Comment API endpoints.

Provides routes for:
- Listing and counting accepted comments of a content item
- Latest comments, overall and per user
- Submitting a comment (authenticated or anonymous)
- Moderation links sent to moderators by email
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, HTTPException, Query, Request, status

from comment_moderation.auth.dependencies import OptionalUser
from comment_moderation.core.logging import get_logger
from comment_moderation.core.middleware import get_client_ip

from .dependencies import (
    CommentSessionDep,
    CommentStoreDep,
    LocaleResolverDep,
    ModerationWorkflowDep,
    handle_comment_error,
)
from .forms import validate_comment_form
from .models import CommentAuthor, ListOptions, ModerationAction
from .moderation import MODERATION_ROUTE_NAME, AnonymousAccessDeniedError
from .schemas import (
    NOT_PROCESSED_MESSAGE,
    CommentCountResponse,
    CommentListResponse,
    CommentResponse,
    ModerationResultResponse,
    RecentCommentsResponse,
    SubmitCommentResponse,
)
from .store import DEFAULT_RECENT_LIMIT, CommentError


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/comments", tags=["comments"])

MAX_RECENT_LIMIT = 50


@router.get(
    "/content/{content_id}",
    response_model=CommentListResponse,
    summary="List content comments",
)
async def list_content_comments(
    content_id: int,
    store: CommentStoreDep,
    sort: Annotated[str | None, Query(description="created or author")] = None,
    order: Annotated[str | None, Query(description="asc or desc")] = None,
) -> CommentListResponse:
    """List accepted comments of a content item.

    Newest first unless ``sort``/``order`` say otherwise.
    """
    comments = await store.list_comments(content_id, ListOptions.from_query(sort, order))
    count = await store.count_accepted(content_id)
    return CommentListResponse(
        content_id=content_id,
        comments=[CommentResponse.from_comment(c) for c in comments],
        count=count,
    )


@router.get(
    "/content/{content_id}/count",
    response_model=CommentCountResponse,
    summary="Count content comments",
)
async def count_content_comments(
    content_id: int, store: CommentStoreDep
) -> CommentCountResponse:
    return CommentCountResponse(
        content_id=content_id, count=await store.count_accepted(content_id)
    )


@router.get(
    "/recent",
    response_model=RecentCommentsResponse,
    summary="Latest comments",
)
async def list_recent_comments(
    store: CommentStoreDep,
    limit: Annotated[int, Query(ge=1, le=MAX_RECENT_LIMIT)] = DEFAULT_RECENT_LIMIT,
) -> RecentCommentsResponse:
    comments = await store.list_recent_comments(limit)
    return RecentCommentsResponse(
        comments=[CommentResponse.from_comment(c) for c in comments]
    )


@router.get(
    "/user/{user_id}/recent",
    response_model=RecentCommentsResponse,
    summary="Latest comments of a user",
)
async def list_recent_user_comments(
    user_id: UUID,
    store: CommentStoreDep,
    limit: Annotated[int, Query(ge=1, le=MAX_RECENT_LIMIT)] = DEFAULT_RECENT_LIMIT,
) -> RecentCommentsResponse:
    comments = await store.list_recent_comments_by_user(user_id, limit)
    return RecentCommentsResponse(
        comments=[CommentResponse.from_comment(c) for c in comments]
    )


@router.post(
    "/content/{content_id}",
    response_model=SubmitCommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit comment",
)
async def submit_comment(
    content_id: int,
    payload: Annotated[dict[str, Any], Body()],
    request: Request,
    workflow: ModerationWorkflowDep,
    locales: LocaleResolverDep,
    session_key: CommentSessionDep,
    user: OptionalUser,
) -> SubmitCommentResponse:
    """Submit a comment on a content item.

    Authenticated visitors send ``message``; anonymous visitors also send
    ``name`` and ``email`` and must leave the ``website`` field empty.
    Invalid fields are answered with 422 and ``errors: {field: message}``.
    """
    anonymous = user is None
    try:
        if anonymous and not workflow.has_anonymous_access():
            raise AnonymousAccessDeniedError

        result = validate_comment_form(payload, anonymous=anonymous)
        if not result.is_valid:
            logger.info(
                "comment_form_invalid",
                content_id=content_id,
                fields=sorted(result.errors),
            )
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"errors": result.errors},
            )

        author = (
            None
            if anonymous
            else CommentAuthor(user_id=user.id, name=user.display_name, email=user.email)
        )
        comment_id = await workflow.submit(
            author,
            result.form,
            content_id=content_id,
            session_key=session_key,
            ip=get_client_ip(request) or "",
            locale_code=locales.from_accept_language(
                request.headers.get("accept-language")
            ),
        )

    except CommentError as e:
        raise handle_comment_error(e) from e

    initial_status = workflow.initial_status()
    return SubmitCommentResponse(
        comment_id=comment_id,
        status=initial_status,
        waiting_for_moderation=workflow.has_moderation(),
    )


@router.get(
    "/moderation/{content_id}/{session_hash}/{action}/{comment_id}",
    response_model=ModerationResultResponse,
    name=MODERATION_ROUTE_NAME,
    summary="Apply a moderation link",
)
async def moderate_comment(
    content_id: int,
    session_hash: str,
    action: ModerationAction,
    comment_id: UUID,
    workflow: ModerationWorkflowDep,
) -> ModerationResultResponse:
    """Approve or reject a waiting comment.

    An applied link answers with the resolved comment.

    Expired, tampered and already used links are answered with
    ``processed: false``; they are expected and not an error.
    """
    applied = await workflow.apply_action(content_id, session_hash, comment_id, action)
    if not applied:
        return ModerationResultResponse(processed=False, message=NOT_PROCESSED_MESSAGE)

    comment = await workflow.get_comment(comment_id)
    return ModerationResultResponse(
        processed=True,
        status=action.target_status,
        comment=CommentResponse.from_comment(comment) if comment else None,
    )
