"""
Error taxonomy for the lead matching engine.

Every failure the core can report is a LeadMatchError subclass carrying a
stable code, the HTTP status the request layer maps it to, and whether a
caller may retry it. Four kinds:

  validation      — bad input, rejected before touching the database
  authorization   — caller identity lacks the required role/ownership
  state conflict  — a legitimate concurrent-use outcome (duplicate, not pending, ...)
  infrastructure  — persistence layer unavailable or too slow; retryable
"""

VALIDATION = 'validation'
AUTHORIZATION = 'authorization'
STATE_CONFLICT = 'state_conflict'
INFRASTRUCTURE = 'infrastructure'


class LeadMatchError(Exception):
    """Base class for all engine errors."""
    code = 'ERROR'
    http_status = 500
    kind = INFRASTRUCTURE
    retryable = False
    default_message = 'The request could not be completed.'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)

    def to_dict(self):
        body = {'error': self.code, 'message': self.message}
        if self.details:
            body['details'] = self.details
        return body


# ── Validation ───────────────────────────────────────────────────────────────

class ValidationError(LeadMatchError):
    """Missing or malformed input. `details` holds [{field, message}, ...]."""
    code = 'VALIDATION_ERROR'
    http_status = 400
    kind = VALIDATION
    default_message = 'Validation failed'


# ── Authorization ────────────────────────────────────────────────────────────

class NotAuthenticated(LeadMatchError):
    code = 'UNAUTHENTICATED'
    http_status = 401
    kind = AUTHORIZATION
    default_message = 'Authentication required'


class NotAuthorized(LeadMatchError):
    code = 'NOT_AUTHORIZED'
    http_status = 403
    kind = AUTHORIZATION
    default_message = 'You do not have permission to perform this action'


# ── State conflicts ──────────────────────────────────────────────────────────

class LeadNotAvailable(LeadMatchError):
    code = 'LEAD_NOT_AVAILABLE'
    http_status = 404
    kind = STATE_CONFLICT
    default_message = 'Lead not found or no longer open'


class ProposalNotFound(LeadMatchError):
    code = 'PROPOSAL_NOT_FOUND'
    http_status = 404
    kind = STATE_CONFLICT
    default_message = 'Proposal not found for this lead'


class DuplicateProposal(LeadMatchError):
    code = 'DUPLICATE_PROPOSAL'
    http_status = 409
    kind = STATE_CONFLICT
    default_message = 'You have already submitted a proposal for this lead'


class InvalidState(LeadMatchError):
    code = 'INVALID_STATE'
    http_status = 409
    kind = STATE_CONFLICT
    default_message = 'This action cannot be performed in the current state'


# ── Infrastructure ───────────────────────────────────────────────────────────

class RepositoryUnavailable(LeadMatchError):
    code = 'REPOSITORY_UNAVAILABLE'
    http_status = 503
    kind = INFRASTRUCTURE
    retryable = True
    default_message = 'Service temporarily unavailable, please try again'

    def __init__(self, message=None, details=None, operation=None):
        self.operation = operation
        super().__init__(message, details)


class RepositoryTimeout(RepositoryUnavailable):
    code = 'TIMEOUT'
    http_status = 504
    default_message = 'The request took too long, please try again'
