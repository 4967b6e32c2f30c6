"""
Tests for ServiceResult and BaseService.
"""

from __future__ import annotations

import pytest
from django.db import transaction

from core.services import BaseService, ServiceResult
from orders.models import Order


class ExampleService(BaseService):
    pass


# =============================================================================
# ServiceResult
# =============================================================================


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert result.data == {"id": 1}
        assert result.error is None
        assert bool(result)

    def test_failure_with_payload(self):
        result = ServiceResult.failure("Card declined", "PROVIDER_DECLINED", data="re_1")

        assert result.success is False
        assert result.error == "Card declined"
        assert result.error_code == "PROVIDER_DECLINED"
        assert result.data == "re_1"
        assert not result


# =============================================================================
# BaseService
# =============================================================================


class TestBaseService:
    def test_logger_named_after_class(self):
        assert ExampleService.get_logger().name == f"{__name__}.ExampleService"

    def test_logger_from_instance(self):
        assert ExampleService().get_logger() is ExampleService.get_logger()

    @pytest.mark.django_db
    def test_atomic_rolls_back(self, order):
        with pytest.raises(RuntimeError), ExampleService.atomic():
            Order.objects.filter(pk=order.pk).update(buyer_ref="changed")
            raise RuntimeError("boom")

        assert Order.objects.get(pk=order.pk).buyer_ref == "buyer-1"

    @pytest.mark.django_db
    def test_atomic_is_a_transaction(self):
        with ExampleService.atomic():
            assert transaction.get_connection().in_atomic_block
