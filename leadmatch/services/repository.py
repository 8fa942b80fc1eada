"""
Repository adapters — the only code that talks to the database.

Each repository wraps one SQLAlchemy session. Status changes are conditional
updates (UPDATE ... WHERE status = :expected) that report whether a row
matched, so concurrent writers race safely without locks: the first commit
wins and the loser sees zero rows.

SQLAlchemy failures are translated at this boundary into RepositoryTimeout /
RepositoryUnavailable, tagged with the operation name. Callers own
commit/rollback.
"""
import logging
from functools import wraps
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError

from leadmatch.config import (
    LEAD_OPEN, LEAD_EXPIRED, LEAD_TRANSITIONS, PROPOSAL_PENDING, PROPOSAL_ACCEPTED,
)
from leadmatch.database import utcnow
from leadmatch.errors import DuplicateProposal, RepositoryTimeout, RepositoryUnavailable
from leadmatch.matching.scoring import ProviderPreferences
from leadmatch.models.lead import Lead
from leadmatch.models.message import Message
from leadmatch.models.proposal import Proposal
from leadmatch.models.provider_profile import ProviderProfile

logger = logging.getLogger('services.repository')

# Driver messages that mean the statement or connection timed out
_TIMEOUT_MARKERS = (
    'statement timeout',
    'canceling statement',
    'timeout expired',
    'timed out',
    'database is locked',
)


def _is_timeout(exc):
    if isinstance(exc, PoolTimeoutError):
        return True
    if isinstance(exc, OperationalError):
        text = str(getattr(exc, 'orig', exc)).lower()
        return any(marker in text for marker in _TIMEOUT_MARKERS)
    return False


def _raise_translated(session, operation, exc):
    session.rollback()
    if _is_timeout(exc):
        logger.error("%s timed out", operation, exc_info=True)
        raise RepositoryTimeout(operation=operation) from exc
    logger.error("%s failed", operation, exc_info=True)
    raise RepositoryUnavailable(operation=operation) from exc


def translate_errors(operation):
    """Map SQLAlchemy errors raised inside a repository method to engine errors."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except IntegrityError:
                raise
            except SQLAlchemyError as e:
                _raise_translated(self.session, operation, e)
        return wrapper
    return decorator


def _open_filter(query, now):
    """Visible to providers: open, not deleted, not archived, not yet past expiry."""
    return query.filter(
        Lead.status == LEAD_OPEN,
        Lead.deleted_at.is_(None),
        Lead.archived.is_(False),
        Lead.expires_at > now,
    )


class LeadRepository:
    """Lead reads and conditional lead mutations."""

    def __init__(self, session):
        self.session = session

    @translate_errors('find_open_leads')
    def find_open_leads(self, now=None) -> List[Lead]:
        return _open_filter(self.session.query(Lead), now or utcnow()).all()

    @translate_errors('find_lead')
    def find_lead(self, lead_id) -> Optional[Lead]:
        """Any non-deleted lead, whatever its status."""
        return self.session.query(Lead).filter(
            Lead.id == lead_id,
            Lead.deleted_at.is_(None),
        ).first()

    @translate_errors('find_open_lead')
    def find_open_lead(self, lead_id, now=None) -> Optional[Lead]:
        return _open_filter(self.session.query(Lead), now or utcnow()).filter(Lead.id == lead_id).first()

    @translate_errors('find_leads_by_owner')
    def find_leads_by_owner(self, owner_id) -> List[Lead]:
        return self.session.query(Lead).filter(
            Lead.owner_id == owner_id,
            Lead.deleted_at.is_(None),
        ).order_by(Lead.created_at.desc(), Lead.id.desc()).all()

    @translate_errors('insert_lead')
    def insert_lead(self, **fields) -> Lead:
        lead = Lead(**fields)
        self.session.add(lead)
        self.session.flush()
        return lead

    @translate_errors('update_lead_fields')
    def update_lead_fields(self, lead_id, expected_status, fields) -> bool:
        """Apply descriptive field edits only while the lead is still in expected_status."""
        result = self.session.execute(
            update(Lead)
            .where(Lead.id == lead_id, Lead.status == expected_status, Lead.deleted_at.is_(None))
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @translate_errors('update_lead_status')
    def update_lead_status(self, lead_id, expected_status, new_status) -> bool:
        """Compare-and-set on status. Returns False when the lead is no longer in expected_status."""
        if new_status not in LEAD_TRANSITIONS.get(expected_status, set()):
            raise ValueError(f"Illegal lead transition {expected_status} → {new_status}")
        values = {'status': new_status}
        if new_status == LEAD_EXPIRED:
            values['archived'] = True
        result = self.session.execute(
            update(Lead)
            .where(Lead.id == lead_id, Lead.status == expected_status, Lead.deleted_at.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @translate_errors('soft_delete_lead')
    def soft_delete_lead(self, lead_id, now=None) -> bool:
        result = self.session.execute(
            update(Lead)
            .where(Lead.id == lead_id, Lead.deleted_at.is_(None))
            .values(deleted_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @translate_errors('expire_overdue_leads')
    def expire_overdue_leads(self, now) -> int:
        """Single guarded bulk update: open and past expiry → expired + archived."""
        result = self.session.execute(
            update(Lead)
            .where(Lead.status == LEAD_OPEN, Lead.expires_at <= now)
            .values(status=LEAD_EXPIRED, archived=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    @translate_errors('reload_lead')
    def reload(self, lead_id) -> Optional[Lead]:
        return self.session.get(Lead, lead_id, populate_existing=True)


class ProposalRepository:
    """Proposal reads, insert with uniqueness, and the pending → terminal update."""

    def __init__(self, session):
        self.session = session

    @translate_errors('find_proposal')
    def find_proposal(self, lead_id, provider_id) -> Optional[Proposal]:
        return self.session.query(Proposal).filter_by(lead_id=lead_id, provider_id=provider_id).first()

    @translate_errors('find_accepted_proposal')
    def find_accepted_proposal(self, lead_id, provider_id) -> Optional[Proposal]:
        return self.session.query(Proposal).filter_by(
            lead_id=lead_id, provider_id=provider_id, status=PROPOSAL_ACCEPTED).first()

    @translate_errors('get_proposal')
    def get_proposal(self, proposal_id, refresh=False) -> Optional[Proposal]:
        return self.session.get(Proposal, proposal_id, populate_existing=refresh)

    @translate_errors('find_proposals_for_lead')
    def find_proposals_for_lead(self, lead_id) -> List[Proposal]:
        return self.session.query(Proposal).filter_by(lead_id=lead_id).order_by(
            Proposal.created_at.asc(), Proposal.id.asc()).all()

    @translate_errors('find_proposals_by_provider')
    def find_proposals_by_provider(self, provider_id) -> List[Proposal]:
        return self.session.query(Proposal).filter_by(provider_id=provider_id).order_by(
            Proposal.created_at.desc(), Proposal.id.desc()).all()

    @translate_errors('insert_proposal')
    def insert_proposal(self, lead_id, provider_id, proposal_text, price=None) -> Proposal:
        """Insert a pending proposal. The unique constraint settles concurrent duplicates."""
        proposal = Proposal(
            lead_id=lead_id,
            provider_id=provider_id,
            proposal_text=proposal_text,
            price=price,
            status=PROPOSAL_PENDING,
            contact_details=None,
        )
        self.session.add(proposal)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateProposal() from e
        return proposal

    @translate_errors('update_proposal_status')
    def update_proposal_status(self, proposal_id, expected_status, new_status,
                               contact_details=None, now=None) -> bool:
        """Compare-and-set on status; only one concurrent caller can move a proposal out of pending."""
        result = self.session.execute(
            update(Proposal)
            .where(Proposal.id == proposal_id, Proposal.status == expected_status)
            .values(status=new_status, contact_details=contact_details, decided_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class ProfileRepository:
    """Provider preference profiles."""

    def __init__(self, session):
        self.session = session

    @translate_errors('find_profile')
    def find_profile(self, provider_id) -> Optional[ProviderProfile]:
        return self.session.get(ProviderProfile, provider_id)

    def find_preferences(self, provider_id) -> Optional[ProviderPreferences]:
        profile = self.find_profile(provider_id)
        if profile is None:
            return None
        return ProviderPreferences.from_dict(profile.preferences)

    @translate_errors('save_preferences')
    def save_preferences(self, provider_id, preferences: dict) -> ProviderProfile:
        profile = self.session.get(ProviderProfile, provider_id)
        if profile is None:
            profile = ProviderProfile(provider_id=provider_id, preferences=preferences)
            self.session.add(profile)
        else:
            profile.preferences = preferences
            profile.updated_at = utcnow()
        self.session.flush()
        return profile


class MessageRepository:
    """Lead message threads."""

    def __init__(self, session):
        self.session = session

    @translate_errors('insert_message')
    def insert_message(self, lead_id, sender_id, receiver_id, content) -> Message:
        now = utcnow()
        message = Message(
            lead_id=lead_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            read=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(message)
        self.session.flush()
        return message

    @translate_errors('find_thread')
    def find_thread(self, lead_id, participant_id=None) -> List[Message]:
        """Messages on a lead, oldest first. participant_id narrows to that user's side of the thread."""
        query = self.session.query(Message).filter(Message.lead_id == lead_id)
        if participant_id is not None:
            query = query.filter(or_(Message.sender_id == participant_id,
                                     Message.receiver_id == participant_id))
        return query.order_by(Message.created_at.asc(), Message.id.asc()).all()

    @translate_errors('mark_thread_read')
    def mark_read(self, lead_id, receiver_id, now=None) -> int:
        """Flip every unread message addressed to receiver_id on this lead. Returns rows changed."""
        result = self.session.execute(
            update(Message)
            .where(Message.lead_id == lead_id,
                   Message.receiver_id == receiver_id,
                   Message.read.is_(False))
            .values(read=True, updated_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


def commit(session, operation='commit'):
    """Commit the unit of work, translating database failures like the repositories do."""
    try:
        session.commit()
    except SQLAlchemyError as e:
        _raise_translated(session, operation, e)
