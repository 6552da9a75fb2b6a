"""
Domain layer for the proxy: request/response models and the pipeline.
"""

from .models import CacheStatus, ProxyResponse, QueryRequest, is_force_fresh
from .pipeline import Dispatch, RequestPipeline, WriteDecision

__all__ = [
    "CacheStatus",
    "ProxyResponse",
    "QueryRequest",
    "is_force_fresh",
    "Dispatch",
    "RequestPipeline",
    "WriteDecision",
]
