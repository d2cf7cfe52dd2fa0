"""Data models for the CareerForge sync layer."""

from careerforge.models._base import CareerForgeModel
from careerforge.models.cache import CachedEntry, EntrySource
from careerforge.models.mutation import HttpMethod, PendingMutation
from careerforge.models.requests import RetryPolicy, StoreRequest
from careerforge.models.response import HttpResponse
from careerforge.models.token import AuthTokens, UserIdentity

__all__ = [
    "AuthTokens",
    "CachedEntry",
    "CareerForgeModel",
    "EntrySource",
    "HttpMethod",
    "HttpResponse",
    "PendingMutation",
    "RetryPolicy",
    "StoreRequest",
    "UserIdentity",
]
