"""Account lifecycle services."""

from .accounts import AccountService, VerificationRequired
from .avatars import AvatarPipeline
from .mailer import Mailer
from .tokens import TokenIssuer

__all__ = ["AccountService", "AvatarPipeline", "Mailer", "TokenIssuer", "VerificationRequired"]
