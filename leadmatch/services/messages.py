"""
Lead messaging — the conversation between a lead's owner and its providers.

Who may do what:
  send    anyone may write to the lead owner; the owner may write to any
          provider who responded to the lead
  read    the owner sees the whole thread; a provider sees their own side of
          it once their proposal has been accepted
  mark    a caller marks the messages addressed to them as read

Deleted leads have no thread.
"""
import logging

from leadmatch.errors import LeadNotAvailable, NotAuthorized
from leadmatch.services.proposals import require_lead_owner
from leadmatch.services.repository import (
    LeadRepository, MessageRepository, ProposalRepository, commit,
)
from leadmatch.services.validation import FieldErrors, clean_text, clean_user_id

logger = logging.getLogger('services.messages')

MAX_MESSAGE_LENGTH = 2000


class MessageService:
    """Lead message threads. One instance per request session."""

    def __init__(self, session):
        self.session = session
        self.leads = LeadRepository(session)
        self.proposals = ProposalRepository(session)
        self.messages = MessageRepository(session)

    def _lead(self, lead_id):
        lead = self.leads.find_lead(lead_id)
        if lead is None:
            raise LeadNotAvailable('Lead not found')
        return lead

    def send(self, sender_id, lead_id, receiver_id, content):
        errors = FieldErrors()
        receiver_id = clean_user_id({'receiver_id': receiver_id}, 'receiver_id', errors)
        text = clean_text({'content': content}, 'content', errors, max_length=MAX_MESSAGE_LENGTH)
        if receiver_id is not None and receiver_id == sender_id:
            errors.add('receiver_id', 'You cannot send a message to yourself')
        errors.raise_if_any()

        lead = self._lead(lead_id)

        if receiver_id != lead.owner_id:
            require_lead_owner(lead, sender_id, f'message provider {receiver_id}',
                               'Messages on this lead can only be sent to its owner')
            if self.proposals.find_proposal(lead_id, receiver_id) is None:
                raise NotAuthorized('You can only message providers who responded to this lead')

        message = self.messages.insert_message(lead_id, sender_id, receiver_id, text)
        commit(self.session, 'insert_message')

        logger.info("Message %s on lead %s from %s to %s", message.id, lead_id, sender_id, receiver_id,
                    extra={'lead_id': lead_id, 'event': 'message_sent'})
        return message

    def thread(self, user_id, lead_id):
        """The caller's view of a lead's messages, oldest first."""
        lead = self._lead(lead_id)
        if lead.owner_id == user_id:
            return self.messages.find_thread(lead_id)

        if self.proposals.find_accepted_proposal(lead_id, user_id) is None:
            logger.warning("User %s attempted to read messages on lead %s without an accepted proposal",
                           user_id, lead_id, extra={'lead_id': lead_id, 'provider_id': user_id})
            raise NotAuthorized("You don't have permission to view messages for this lead")
        return self.messages.find_thread(lead_id, participant_id=user_id)

    def mark_read(self, user_id, lead_id) -> int:
        """Mark every unread message addressed to the caller on this lead. Returns how many changed."""
        self._lead(lead_id)
        updated = self.messages.mark_read(lead_id, user_id)
        commit(self.session, 'mark_thread_read')
        if updated:
            logger.info("Marked %d messages read on lead %s for user %s", updated, lead_id, user_id,
                        extra={'lead_id': lead_id})
        return updated
