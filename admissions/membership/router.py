"""Membership domain router.

Join requests, the admin review queue and the review, assignment and
backfill operations.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from admissions.auth.dependencies import AdminCallerDep, CallerDep, require_auth
from admissions.core.constants import CommonResponses, Routes
from admissions.membership.models import MembershipStatus
from admissions.membership.schemas import (
    AssignRequest,
    BackfillRequest,
    BackfillResponse,
    JoinRequest,
    JoinResponse,
    MembershipRead,
    ReviewRequest,
    ReviewResponse,
)
from admissions.membership.service import MembershipServiceDep, ReviewResult

router = APIRouter(
    prefix=Routes.MEMBERSHIP.prefix,
    tags=[Routes.MEMBERSHIP.tag],
    dependencies=[Depends(require_auth)],
    responses={
        **CommonResponses.UNAUTHORIZED,
        **CommonResponses.FORBIDDEN,
        **CommonResponses.UNAVAILABLE,
    },
)


def _review_response(result: ReviewResult) -> ReviewResponse:
    return ReviewResponse(
        membership=MembershipRead.model_validate(result.membership),
        home_institution_claimed=result.home_institution_claimed,
        claims_projected=result.claims_projected,
        parent_membership_created=result.parent_membership_created,
        transfer_membership_created=result.transfer_membership_created,
    )


@router.post(
    "",
    response_model=JoinResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"description": "A pending or approved membership already exists"},
        **CommonResponses.NOT_FOUND,
        **CommonResponses.CONFLICT,
        **CommonResponses.BAD_REQUEST,
    },
)
async def request_join(
    payload: JoinRequest,
    response: Response,
    caller: CallerDep,
    memberships: MembershipServiceDep,
):
    """Ask to join an institution.

    Returns 201 when a request was created or reopened and 200 when the
    caller already has a pending or approved membership there.
    """
    result = memberships.request_join(
        caller, payload.institution_id, payload.join_method, payload.invite_code
    )
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return JoinResponse(
        membership=MembershipRead.model_validate(result.membership),
        created=result.created,
        reopened=result.reopened,
    )


@router.get("/me", response_model=list[MembershipRead])
async def list_my_memberships(caller: CallerDep, memberships: MembershipServiceDep):
    """List the current user's memberships."""
    return memberships.list_own(caller)


@router.get("", response_model=list[MembershipRead])
async def list_queue(
    caller: AdminCallerDep,
    memberships: MembershipServiceDep,
    institution_id: str | None = None,
    status_filter: Annotated[
        MembershipStatus | None, Query(alias="status")
    ] = MembershipStatus.pending,
):
    """Admin review queue, oldest request first.

    Institution admins only see their own institution.
    """
    return memberships.list_queue(caller, institution_id, status_filter)


@router.put(
    "/{user_id}/{institution_id}/review",
    response_model=ReviewResponse,
    responses={
        **CommonResponses.NOT_FOUND,
        **CommonResponses.CONFLICT,
        **CommonResponses.BAD_REQUEST,
    },
)
async def review_membership(
    user_id: str,
    institution_id: str,
    payload: ReviewRequest,
    caller: CallerDep,
    memberships: MembershipServiceDep,
):
    """Approve, reject or transfer a membership."""
    result = memberships.review(
        caller,
        user_id,
        institution_id,
        payload.action,
        note=payload.note,
        transfer_to=payload.transfer_to,
    )
    return _review_response(result)


@router.post(
    "/assign",
    response_model=ReviewResponse,
    responses={**CommonResponses.NOT_FOUND, **CommonResponses.CONFLICT},
)
async def assign_membership(
    payload: AssignRequest, caller: CallerDep, memberships: MembershipServiceDep
):
    """Directly add a user to an institution as an approved member."""
    result = memberships.assign(caller, payload.user_id, payload.institution_id)
    return _review_response(result)


@router.post(
    "/backfill",
    response_model=BackfillResponse,
    responses={**CommonResponses.NOT_FOUND},
)
async def backfill_memberships(
    payload: BackfillRequest, caller: CallerDep, memberships: MembershipServiceDep
):
    """Create approved memberships for home users that have none."""
    result = memberships.backfill(caller, payload.institution_id)
    return BackfillResponse(created=result.created, scanned=result.scanned)
