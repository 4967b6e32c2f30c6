"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Services encapsulate business logic separate from views and models.
Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected outcomes (provider declined, already paid)
    - Exceptions: Use for rejections and unexpected failures

Usage:
    from core.services import BaseService, ServiceResult

    class PayoutOrchestrator(BaseService):
        def run_one(self, payout_id) -> ServiceResult[PayoutRunResult]:
            ...
            self.get_logger().info("Payout paid", extra={"payout_id": str(payout_id)})
            return ServiceResult.success(result)

    # In a task
    result = container.payouts.run_one(payout_id)
    if not result:
        logger.warning(result.error, extra={"error_code": result.error_code})
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data (also set on failures that carry a payload)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling

    Usage:
        return ServiceResult.success(refund)
        return ServiceResult.failure("Card declined", "PROVIDER_DECLINED")

        result = processor.approve_and_process(refund_id, approver)
        if not result:
            logger.warning(result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        data: T | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            data: Optional payload describing the failed operation

        Example:
            return ServiceResult.failure(
                "Payout failed permanently",
                error_code="PAYOUT_FAILED",
                data=PayoutRunResult(...),
            )
        """
        return cls(success=False, data=data, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Explicit transaction boundaries

    Services in this project are constructed once by the composition root
    (payments.container) with their collaborators injected, so helpers are
    classmethods usable from both instances and classes.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        A thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
