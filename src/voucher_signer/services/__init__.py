from .issuance import IssuanceService
from .verification import VerificationService

__all__ = ["IssuanceService", "VerificationService"]
