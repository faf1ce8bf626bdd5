from snf_admin.core.auth.models import CurrentUser, UserRole

__all__ = ["CurrentUser", "UserRole"]
