"""BIG-IP management API client."""
from .post_manager import PostManager, classify_status

__all__ = ["PostManager", "classify_status"]
