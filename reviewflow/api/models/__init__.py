"""Pydantic request and response models for the HTTP API."""

from .base import ERROR_RESPONSES, BaseResponse, ErrorBody, ErrorResponse, PaginationMeta
from .brand_voice import BrandVoiceResponse, BrandVoiceUpdateRequest
from .credits import (
    AccountCreateRequest,
    AccountResponse,
    BalanceResponse,
    QuotaStatus,
    RolloverRequest,
    RolloverResponse,
    UsageListResponse,
    UsageRecordResponse,
)
from .response import (
    EditResponseRequest,
    GenerateRequest,
    GenerationResult,
    RegenerateRequest,
    ResponseDetail,
    ResponseWithVersions,
    RestoreVersionRequest,
    VersionDetail,
)
from .review import CreateReviewResponse, ReviewListResponse, ReviewResponse, SentimentInfo

__all__ = [
    "AccountCreateRequest",
    "AccountResponse",
    "BalanceResponse",
    "ERROR_RESPONSES",
    "BaseResponse",
    "ErrorBody",
    "BrandVoiceResponse",
    "BrandVoiceUpdateRequest",
    "CreateReviewResponse",
    "EditResponseRequest",
    "ErrorResponse",
    "GenerateRequest",
    "GenerationResult",
    "PaginationMeta",
    "QuotaStatus",
    "RegenerateRequest",
    "ResponseDetail",
    "ResponseWithVersions",
    "RestoreVersionRequest",
    "ReviewListResponse",
    "ReviewResponse",
    "RolloverRequest",
    "RolloverResponse",
    "SentimentInfo",
    "UsageListResponse",
    "UsageRecordResponse",
    "VersionDetail",
]
