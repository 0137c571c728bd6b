"""Tests for the pydantic domain entities."""

import math

import pytest
from pydantic import ValidationError

from core.domain.entities.minute_snapshot_entity import MinuteSnapshotEntity
from core.domain.entities.price_sample_entity import PriceSampleEntity
from fakes import FIXED_NOW, JLP_ID


def _sample(**overrides) -> PriceSampleEntity:
    data = {"symbol": "JLP", "price": 1.23, "source_key": JLP_ID, "observed_at": FIXED_NOW}
    data.update(overrides)
    return PriceSampleEntity(**data)


class TestPriceSampleEntity:
    """Unit tests for PriceSampleEntity."""

    def test_creation(self):
        """Test basic sample creation."""
        sample = _sample()
        assert sample.symbol == "JLP"
        assert sample.price == 1.23
        assert sample.source_key == JLP_ID
        assert sample.observed_at == FIXED_NOW

    def test_zero_price_allowed(self):
        """Zero is a valid (non-negative) price."""
        assert _sample(price=0.0).price == 0.0

    @pytest.mark.parametrize("bad", [-0.01, math.inf, math.nan])
    def test_rejects_negative_or_non_finite(self, bad):
        """Negative, infinite and NaN prices are rejected."""
        with pytest.raises(ValidationError):
            _sample(price=bad)

    def test_immutability(self):
        """Samples cannot be mutated after creation."""
        sample = _sample()
        with pytest.raises(ValidationError):
            sample.price = 2.0

    def test_to_mongo_keeps_datetime(self):
        """Mongo documents keep a real datetime (needed by the TTL index) and drop a null id."""
        doc = _sample().to_mongo()
        assert doc["observed_at"] == FIXED_NOW
        assert "_id" not in doc
        assert "id" not in doc

    def test_from_mongo_maps_object_id(self):
        """Mongo's _id is mapped back to a string id."""
        doc = {"_id": 42, "symbol": "JLP", "price": 1.5, "source_key": JLP_ID, "observed_at": FIXED_NOW}
        sample = PriceSampleEntity.from_mongo(doc)
        assert sample is not None
        assert sample.id == "42"
        assert sample.price == 1.5

    def test_from_mongo_none(self):
        assert PriceSampleEntity.from_mongo(None) is None

    def test_to_dict_is_json_safe(self):
        """to_dict renders timestamps as ISO strings for the wire."""
        result = _sample().to_dict()
        assert result == {
            "symbol": "JLP",
            "price": 1.23,
            "source_key": JLP_ID,
            "observed_at": "2025-01-15T12:00:00Z",
        }


class TestMinuteSnapshotEntity:
    def test_to_mongo(self):
        snap = MinuteSnapshotEntity(values={"JLP": 1.2, "SOL": 150.0}, captured_at=FIXED_NOW)
        doc = snap.to_mongo()
        assert doc == {"values": {"JLP": 1.2, "SOL": 150.0}, "captured_at": FIXED_NOW}
