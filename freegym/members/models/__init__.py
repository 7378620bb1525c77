from .members import Member, MemberRole

__all__ = ["Member", "MemberRole"]
