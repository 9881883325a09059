import logging
import re
from typing import Callable

from mpesa_c2b.schemas.c2b import (
    ConfirmationRequest,
    ConfirmationResponse,
    ValidationRequest,
    ValidationResponse,
)

logger = logging.getLogger(__name__)

# Daraja validation result codes
ACCEPTED = "0"
INVALID_ACCOUNT = "C2B00012"
OTHER_ERROR = "C2B00016"

ValidationPolicy = Callable[[ValidationRequest], bool]
ConfirmationSink = Callable[[ConfirmationRequest], None]


def accept_all(transaction: ValidationRequest) -> bool:
    return True


def account_reference_policy(pattern: str) -> ValidationPolicy:
    """Accept only transactions whose BillRefNumber fully matches ``pattern``."""
    compiled = re.compile(pattern)

    def policy(transaction: ValidationRequest) -> bool:
        ref = transaction.BillRefNumber
        if isinstance(ref, (int, float)) and not isinstance(ref, bool):
            ref = str(ref)
        if not isinstance(ref, str):
            return False
        return compiled.fullmatch(ref) is not None

    return policy


def log_confirmation(transaction: ConfirmationRequest) -> None:
    logger.info(
        f"Confirmed transaction {transaction.TransID} of {transaction.TransAmount} "
        f"for account {transaction.BillRefNumber}"
    )


def accepted() -> ValidationResponse:
    return ValidationResponse(ResultCode=ACCEPTED, ResultDesc="Accepted")


def rejected(code: str = INVALID_ACCOUNT) -> ValidationResponse:
    return ValidationResponse(ResultCode=code, ResultDesc="Rejected")


def validate_transaction(payload: object, policy: ValidationPolicy) -> ValidationResponse:
    """Run the acceptance policy; any failure rejects with OTHER_ERROR."""
    try:
        transaction = ValidationRequest.model_validate(payload)
        if policy(transaction):
            return accepted()
        logger.info(f"Validation rejected transaction {transaction.TransID}")
        return rejected()
    except Exception as e:
        logger.error(f"Validation Error: {e!r}", exc_info=True)
        return rejected(OTHER_ERROR)


def confirm_transaction(payload: object, sink: ConfirmationSink) -> ConfirmationResponse:
    """Hand the transaction to ``sink``. Always acknowledges success."""
    try:
        sink(ConfirmationRequest.model_validate(payload))
    except Exception as e:
        logger.error(f"Confirmation Error: {e!r}", exc_info=True)
    return ConfirmationResponse()
