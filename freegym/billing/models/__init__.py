from .packages import MembershipPackage, PackageType
from .memberships import Membership, MembershipStatus
from .payments import Payment, PaymentStatus, PaymentDecision

__all__ = [
    "MembershipPackage",
    "PackageType",
    "Membership",
    "MembershipStatus",
    "Payment",
    "PaymentStatus",
    "PaymentDecision",
]
