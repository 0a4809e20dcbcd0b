"""
services/invitation_service.py — Invite-by-email sharing.

An owner invites an email address to a note or folder with a given access
level. When the person holding that email accepts, the invitation is
marked accepted and the matching grant is created (or its level updated)
in the same transaction.

Lifecycle: pending -> accepted | declined. Pending invitations expire after
INVITATION_TTL (30 days by default) and can then no longer be accepted.

Layer rules:
  - No Flask imports. Session is a parameter; commits belong to the route.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from noteworthy.app.errors import AppError, ErrorCode
from noteworthy.app.helpers import as_utc, isoformat, mask_email, utcnow
from noteworthy.app.models.invitation import Invitation, InvitationStatus
from noteworthy.app.models.permission import EntityType, Permission
from noteworthy.app.models.user import User
from noteworthy.app.services import access_service, permission_service
from noteworthy.app.services.access_service import Action
from noteworthy.app.services.session_service import Identity

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=30)


def _build_invitation_dict(invitation: Invitation) -> dict:
    return {
        "id": invitation.id,
        "inviter_id": invitation.inviter_id,
        "invitee_email": invitation.invitee_email,
        "entity_type": invitation.entity_type,
        "entity_id": invitation.entity_id,
        "access_level": invitation.access_level,
        "status": invitation.status,
        "expires_at": isoformat(invitation.expires_at),
        "created_at": isoformat(invitation.created_at),
    }


def _is_expired(invitation: Invitation, now: datetime) -> bool:
    return as_utc(invitation.expires_at) <= now


def _get_addressed_invitation(
        invitation_id: str,
        identity: Identity,
        session: Session,
) -> Invitation:
    """
    Loads an invitation and checks it was sent to the caller's email.

    The email comes from the users table, not from the token, so a changed
    address cannot be used to claim old invitations.
    """
    invitation = session.get(Invitation, invitation_id)
    if invitation is None:
        raise AppError(
            ErrorCode.INVITATION_NOT_FOUND,
            f"Invitation {invitation_id} does not exist.",
            404,
        )

    user = session.get(User, identity.user_id)
    if user is None or invitation.invitee_email != user.email.lower():
        raise AppError(
            ErrorCode.FORBIDDEN,
            "This invitation is not addressed to you.",
            403,
        )
    return invitation


def _require_pending(invitation: Invitation, now: datetime) -> None:
    if invitation.status != InvitationStatus.PENDING.value:
        raise AppError(
            ErrorCode.INVITATION_NOT_PENDING,
            f"The invitation has already been {invitation.status}.",
            422,
        )
    if _is_expired(invitation, now):
        raise AppError(
            ErrorCode.INVITATION_EXPIRED,
            "The invitation has expired.",
            422,
        )


# ── Public service functions ───────────────────────────────────────────────

def create_invitation(
        invitee_email: str,
        entity_type: EntityType | str,
        entity_id: str,
        access_level: str,
        identity: Identity,
        session: Session,
        ttl: timedelta = DEFAULT_TTL,
        now: datetime | None = None,
) -> dict:
    """
    Invites `invitee_email` to the entity. Owner only (MANAGE).

    Raises:
      AppError(CANNOT_GRANT_OWNER, 422)          — inviting the owner
      AppError(ALREADY_HAS_ACCESS, 409)          — invitee already has a grant
      AppError(INVITATION_ALREADY_PENDING, 409)  — an unexpired invitation exists
    """
    now = now or utcnow()
    entity_type = EntityType(entity_type).value
    invitee_email = invitee_email.strip().lower()

    resource = access_service.require_access(
        identity, Action.MANAGE, entity_type, entity_id, session,
    )

    owner = session.get(User, resource.owner_id)
    if owner is not None and owner.email.lower() == invitee_email:
        raise AppError(
            ErrorCode.CANNOT_GRANT_OWNER,
            "The owner already has full access.",
            422,
            field="invitee_email",
        )

    has_grant = session.execute(
        select(Permission.id)
        .join(User, User.id == Permission.user_id)
        .where(
            User.email == invitee_email,
            Permission.entity_type == entity_type,
            Permission.entity_id == entity_id,
        )
    ).first() is not None
    if has_grant:
        raise AppError(
            ErrorCode.ALREADY_HAS_ACCESS,
            "This user already has access.",
            409,
            field="invitee_email",
        )

    pending = session.execute(
        select(Invitation).where(
            Invitation.invitee_email == invitee_email,
            Invitation.entity_type == entity_type,
            Invitation.entity_id == entity_id,
            Invitation.status == InvitationStatus.PENDING.value,
        )
    ).scalars().all()
    if any(not _is_expired(inv, now) for inv in pending):
        raise AppError(
            ErrorCode.INVITATION_ALREADY_PENDING,
            "An invitation for this user is already pending.",
            409,
            field="invitee_email",
        )

    invitation = Invitation(
        inviter_id=identity.user_id,
        invitee_email=invitee_email,
        entity_type=entity_type,
        entity_id=entity_id,
        access_level=access_level,
        status=InvitationStatus.PENDING.value,
        token=secrets.token_hex(32),
        expires_at=now + ttl,
    )
    session.add(invitation)
    session.flush()

    logger.info(
        "Invitation %s created by user %s for %s",
        invitation.id, identity.user_id, mask_email(invitee_email),
    )
    return _build_invitation_dict(invitation)


def list_pending_invitations(
        identity: Identity,
        session: Session,
        now: datetime | None = None,
) -> list[dict]:
    """Unexpired pending invitations addressed to the caller, newest first."""
    now = now or utcnow()
    user = session.get(User, identity.user_id)
    if user is None:
        return []

    invitations = session.execute(
        select(Invitation)
        .where(
            Invitation.invitee_email == user.email.lower(),
            Invitation.status == InvitationStatus.PENDING.value,
        )
        .order_by(Invitation.created_at.desc(), Invitation.id)
    ).scalars().all()

    return [_build_invitation_dict(i) for i in invitations if not _is_expired(i, now)]


def accept_invitation(
        invitation_id: str,
        identity: Identity,
        session: Session,
        now: datetime | None = None,
) -> dict:
    """
    Marks the invitation accepted and creates or updates the grant.

    Returns: {"invitation": {...}, "permission": {...}}
    """
    now = now or utcnow()
    invitation = _get_addressed_invitation(invitation_id, identity, session)
    _require_pending(invitation, now)

    invitation.status = InvitationStatus.ACCEPTED.value
    permission, _ = permission_service.upsert_grant(
        identity.user_id,
        invitation.entity_type,
        invitation.entity_id,
        invitation.access_level,
        session,
    )
    session.flush()

    logger.info("Invitation %s accepted by user %s", invitation.id, identity.user_id)
    return {
        "invitation": _build_invitation_dict(invitation),
        "permission": {
            "id": permission.id,
            "entity_type": permission.entity_type,
            "entity_id": permission.entity_id,
            "access_level": permission.access_level,
        },
    }


def decline_invitation(
        invitation_id: str,
        identity: Identity,
        session: Session,
) -> dict:
    invitation = _get_addressed_invitation(invitation_id, identity, session)
    if invitation.status != InvitationStatus.PENDING.value:
        raise AppError(
            ErrorCode.INVITATION_NOT_PENDING,
            f"The invitation has already been {invitation.status}.",
            422,
        )

    invitation.status = InvitationStatus.DECLINED.value
    session.flush()
    return _build_invitation_dict(invitation)
