from .referrals import Referral, ReferralStatus

__all__ = ["Referral", "ReferralStatus"]
