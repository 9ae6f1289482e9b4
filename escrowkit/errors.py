"""Machine-readable error categories for escrow and oracle failures.

Every failure aborts the whole operation. Callers can branch either on the
category (``AuthorizationError``, ``TimingError``, ...) or on the exact leaf.
"""


class EscrowKitError(Exception):
    """Base exception for all escrowkit errors."""


# -- authorization ----------------------------------------------------------

class AuthorizationError(EscrowKitError):
    """Caller lacks the role required by the operation."""


class NotDepositor(AuthorizationError):
    """Only the depositor may call this operation."""


class NotBeneficiary(AuthorizationError):
    """Only the beneficiary may call this operation."""


class NotParticipant(AuthorizationError):
    """Caller is neither the depositor nor the beneficiary."""


class NotArbitrator(AuthorizationError):
    """Only the arbitrator may call this operation."""


class NotResolver(AuthorizationError):
    """Only the registry's resolver may call this operation."""


# -- state ------------------------------------------------------------------

class StateError(EscrowKitError):
    """Operation is not valid for the current lifecycle state."""


class InvalidState(StateError):
    """Deal is not in a state that permits this operation."""


class ReentrantCall(StateError):
    """A guarded operation was re-entered while still in progress."""


class NoProposalExist(StateError):
    """No proposal is recorded for the given id."""


class AlreadyProposed(StateError):
    """A proposal already exists for the given id."""


class AlreadyDisputed(StateError):
    """The proposal has already been disputed."""


class AlreadyResolved(StateError):
    """The proposal has already been resolved."""


class Disputed(StateError):
    """The proposal is disputed and cannot be finalized optimistically."""


class NotDisputed(StateError):
    """The proposal was never disputed."""


# -- validation -------------------------------------------------------------

class ValidationError(EscrowKitError):
    """Malformed or out-of-range input."""


class InvalidAmount(ValidationError):
    """Amount must be a positive integer."""


class InvalidDeadline(ValidationError):
    """Deadline must lie in the future."""


class InvalidBeneficiary(ValidationError):
    """Beneficiary must be a non-zero address distinct from the depositor."""


class InvalidAddress(ValidationError):
    """Value is not a valid 20-byte address."""


class InvalidOutcome(ValidationError):
    """Outcome must be RELEASE or REFUND."""


class InvalidNonce(ValidationError):
    """Nonce must fit in an unsigned 256-bit integer."""


# -- timing -----------------------------------------------------------------

class TimingError(EscrowKitError):
    """A deadline or challenge-window boundary was violated."""


class DeadlineExpired(TimingError):
    """The deal deadline has passed."""


class DeadlineNotExpired(TimingError):
    """The deal deadline has not passed yet."""


class ChallengeWindowClosed(TimingError):
    """The challenge window for the proposal is over."""


class ChallengeWindowNotClosed(TimingError):
    """The challenge window for the proposal is still open."""


# -- payment ----------------------------------------------------------------

class PaymentError(EscrowKitError):
    """Moving funds failed."""


class WrongPaymentAmount(PaymentError):
    """Native payment does not equal the locked amount."""


class TransferFailed(PaymentError):
    """A native or token transfer did not succeed."""


class InsufficientBalance(PaymentError):
    """Sender does not hold enough funds for the transfer."""


# -- integrity --------------------------------------------------------------

class IntegrityError(EscrowKitError):
    """Signature mismatch or message replay."""


class BadOracleSignature(IntegrityError):
    """Signature is malformed or was not produced by the oracle signer."""


class OracleReplay(IntegrityError):
    """The oracle message digest has already been consumed."""


# -- key management ---------------------------------------------------------

class IdentityError(EscrowKitError):
    """Identity key loading or generation error."""


# -- serialization ----------------------------------------------------------

class CanonicalizationError(EscrowKitError):
    """JSON canonicalization error."""
