# Import models here so Alembic can discover them via metadata
from .base import Base  # noqa: F401
from .user import User  # noqa: F401
from .business import Business  # noqa: F401
from .provider import Provider  # noqa: F401
from .application import ProviderApplication  # noqa: F401
from .document import BusinessDocument  # noqa: F401
from .setup_progress import SetupProgress  # noqa: F401
from .approval import ApplicationApproval  # noqa: F401
from .identity_verification import IdentityVerificationSession  # noqa: F401
from .bank_connection import BankConnection  # noqa: F401
from .payment_account import PaymentAccount  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
