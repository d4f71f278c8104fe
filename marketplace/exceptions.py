"""
Error taxonomy for the trade lifecycle and reputation engine.

Every error is recoverable and carries a user-facing ``detail`` message, a
machine-readable ``code`` and the HTTP status the API layer reports it with.

    MarketplaceError
    ├── ValidationError (400)
    │   ├── InvalidCoordinateError
    │   └── RevieweeMismatchError
    ├── AuthorizationError (403)
    │   └── NotOwnerError
    ├── NotFoundError (404)
    └── StateConflictError (409)
        ├── InvalidTransition
        ├── ItemUnavailableError
        ├── SelfTradeError
        ├── DuplicateRequestError
        ├── AlreadyCompletedError
        ├── AlreadyRatedError
        └── SelfRatingError
"""


class MarketplaceError(Exception):
    """Base class for all engine errors."""

    status_code = 400
    default_detail = 'The request could not be processed.'
    default_code = 'marketplace_error'

    def __init__(self, detail=None, code=None):
        self.detail = detail or self.default_detail
        self.code = code or self.default_code
        super().__init__(self.detail)

    def as_dict(self):
        return {'detail': self.detail, 'code': self.code}


class ValidationError(MarketplaceError):
    """Malformed input: rating out of range, comment too long, bad coordinates."""

    status_code = 400
    default_detail = 'Invalid input.'
    default_code = 'invalid'


class InvalidCoordinateError(ValidationError):
    default_detail = 'Latitude must be within [-90, 90] and longitude within [-180, 180].'
    default_code = 'invalid_coordinate'


class RevieweeMismatchError(ValidationError):
    default_detail = 'You can only rate the user who supplied the item you received.'
    default_code = 'reviewee_mismatch'


class AuthorizationError(MarketplaceError):
    """The actor is not permitted to perform the action."""

    status_code = 403
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'permission_denied'


class NotOwnerError(AuthorizationError):
    default_detail = 'You do not own this item.'
    default_code = 'not_owner'


class NotFoundError(MarketplaceError):
    status_code = 404
    default_detail = 'Not found.'
    default_code = 'not_found'


class StateConflictError(MarketplaceError):
    """The entity is not in a state that allows the action."""

    status_code = 409
    default_detail = 'This action conflicts with the current state.'
    default_code = 'state_conflict'


class InvalidTransition(StateConflictError):
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


class ItemUnavailableError(StateConflictError):
    default_detail = 'This item is no longer available.'
    default_code = 'item_unavailable'


class SelfTradeError(StateConflictError):
    default_detail = 'You cannot trade with yourself.'
    default_code = 'self_trade'


class DuplicateRequestError(StateConflictError):
    default_detail = 'You already have a pending request for this item pair.'
    default_code = 'duplicate_request'


class AlreadyCompletedError(StateConflictError):
    default_detail = 'This trade has already been completed.'
    default_code = 'already_completed'


class AlreadyRatedError(StateConflictError):
    default_detail = 'You have already rated this trade.'
    default_code = 'already_rated'


class SelfRatingError(StateConflictError):
    default_detail = 'You cannot rate yourself.'
    default_code = 'self_rating'
